"""
SSE Response
Drives a RelayPipeline over a raw ASGI connection.
"""

import asyncio
from collections.abc import Mapping

from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from ..core import get_logger
from ..core.errors import ClientDisconnected
from .frames import StreamFrame, encode_frame
from .relay import RelayOutcome, RelayPipeline

logger = get_logger(__name__)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ASGIFrameWriter:
    """Writes frames as body messages; raises ClientDisconnected once the peer is gone."""

    def __init__(self, send: Send, disconnected: asyncio.Event) -> None:
        self._send = send
        self._disconnected = disconnected
        self.closed = False
        self.frames_written = 0

    async def send(self, frame: StreamFrame) -> None:
        if self.closed or self._disconnected.is_set():
            self.closed = True
            raise ClientDisconnected()
        try:
            await self._send(
                {"type": "http.response.body", "body": encode_frame(frame), "more_body": True}
            )
        except OSError as e:
            self.closed = True
            raise ClientDisconnected() from e
        self.frames_written += 1


class EventStreamResponse(Response):
    """
    Streaming response for one generation.

    Unlike StreamingResponse the body is produced by a pipeline that must
    learn about disconnects, so receive is watched for ``http.disconnect``
    and the writer refuses further frames once it arrives.
    """

    media_type = "text/event-stream"

    def __init__(
        self,
        pipeline: RelayPipeline,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.status_code = status_code
        self.background = None
        self.outcome: RelayOutcome | None = None
        self.init_headers({**SSE_HEADERS, **(headers or {})})

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        disconnected = asyncio.Event()

        async def listen_for_disconnect() -> None:
            while True:
                message = await receive()
                if message["type"] == "http.disconnect":
                    disconnected.set()
                    return

        listener = asyncio.create_task(listen_for_disconnect())
        writer = ASGIFrameWriter(send, disconnected)
        try:
            await send(
                {
                    "type": "http.response.start",
                    "status": self.status_code,
                    "headers": self.raw_headers,
                }
            )
            self.outcome = await self.pipeline.run(writer)
            if not writer.closed:
                try:
                    await send({"type": "http.response.body", "body": b"", "more_body": False})
                except OSError:
                    logger.info("sse_close_after_disconnect")
        finally:
            listener.cancel()
            await asyncio.wait({listener})
