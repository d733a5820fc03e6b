"""
Stream Session
Client-side reassembly of SSE frames into observable generation state.
"""

import asyncio
import codecs
from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

import httpx

from ..core import get_logger
from ..core.json import JSONParseError, loads_object
from ..prompts.platforms import Platform
from .frames import SSE_PREFIX

logger = get_logger(__name__)

DEFAULT_ERROR = "Generation failed"
UNEXPECTED_END = "Stream ended unexpectedly"


class SessionStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ClientStreamState:
    """Snapshot handed to listeners."""

    content: str = ""
    status: SessionStatus = SessionStatus.IDLE
    error: str | None = None
    blueprint_id: str | None = None

    @property
    def finished(self) -> bool:
        return self.status in (SessionStatus.COMPLETE, SessionStatus.ERROR)


Listener = Callable[[ClientStreamState], None]


class StreamSession:
    """
    Consumes one SSE byte stream.

    Bytes may split UTF-8 sequences and lines anywhere; both are buffered
    until complete. Partial content is kept when the stream fails.
    """

    def __init__(self) -> None:
        self._state = ClientStreamState()
        self._listeners: list[Listener] = []
        self._consumed = False
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> ClientStreamState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def cancel(self) -> None:
        """
        Stop consuming. State is frozen from here on.

        A read blocked inside ``consume`` is interrupted and the byte source
        is closed, so a stalled connection is released immediately.
        """
        self._cancelled = True
        task = self._task
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def start(self) -> None:
        """
        Enter the generating state with empty content.

        Raises:
            RuntimeError: If this session was already started
        """
        if self._consumed:
            raise RuntimeError("StreamSession is single-use; create a new session")
        self._consumed = True
        self._set(ClientStreamState(status=SessionStatus.GENERATING))

    async def consume(self, source: AsyncIterable[bytes]) -> ClientStreamState:
        """
        Read the stream to its end (or until cancelled).

        Returns:
            Final state

        Raises:
            RuntimeError: If this session already consumed a stream
        """
        self.start()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        task = asyncio.current_task()
        self._task = task
        try:
            async for data in source:
                if self._cancelled:
                    break
                pending += decoder.decode(data)
                *lines, pending = pending.split("\n")
                for line in lines:
                    self.feed_line(line)
                    if self._cancelled:
                        break

            if not self._cancelled:
                pending += decoder.decode(b"", final=True)
                if pending:
                    self.feed_line(pending)
        except asyncio.CancelledError:
            if not self._cancelled or task is None:
                raise
            task.uncancel()
            logger.debug("session_cancelled", chars=len(self._state.content))
        except Exception as e:
            logger.warning("session_stream_error", error=str(e))
            self.fail(str(e) or "Unknown error occurred")
        finally:
            self._task = None
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()

        if self._state.status == SessionStatus.GENERATING:
            self.fail(UNEXPECTED_END)
        return self._state

    def feed_line(self, line: str) -> None:
        """Apply one SSE line to the state."""
        line = line.strip()
        if not line.startswith(SSE_PREFIX):
            return
        payload = line[len(SSE_PREFIX):]
        if payload == "[DONE]":
            return

        try:
            frame = loads_object(payload)
        except JSONParseError:
            logger.debug("session_raw_payload", length=len(payload))
            self._append(payload)
            return
        self._apply(frame)

    def fail(self, message: str) -> None:
        """Move to error, keeping whatever content arrived."""
        self._set(replace(self._state, status=SessionStatus.ERROR, error=message))

    def _apply(self, frame: dict[str, Any]) -> None:
        kind = frame.get("type")
        if kind == "chunk":
            content = frame.get("content")
            if isinstance(content, str) and content:
                self._append(content)
        elif kind == "complete":
            self._set(
                replace(
                    self._state,
                    status=SessionStatus.COMPLETE,
                    blueprint_id=frame.get("blueprintId"),
                )
            )
        elif kind == "error":
            message = frame.get("error") or frame.get("message") or DEFAULT_ERROR
            self._set(
                replace(
                    self._state,
                    status=SessionStatus.ERROR,
                    error=str(message),
                    blueprint_id=frame.get("blueprintId") or self._state.blueprint_id,
                )
            )
        else:
            logger.debug("session_unknown_frame", kind=kind)

    def _append(self, text: str) -> None:
        self._set(replace(self._state, content=self._state.content + text))

    def _set(self, state: ClientStreamState) -> None:
        # Only the first terminal transition counts
        if self._cancelled or self._state.finished:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning("session_listener_failed", error=str(e))


class BlueprintStreamClient:
    """HTTP client that drives a StreamSession against the generate endpoint."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def generate(
        self,
        prompt: str,
        platform: Platform | str,
        api_key: str | None = None,
        user_id: str | None = None,
        on_update: Listener | None = None,
        session: StreamSession | None = None,
    ) -> ClientStreamState:
        """
        Request a blueprint and follow the stream.

        Args:
            prompt: Application description
            platform: Target platform
            api_key: Optional provider key forwarded to the server
            user_id: Optional owner id
            on_update: Listener for every state change
            session: Session to drive (a new one by default)

        Returns:
            Final session state
        """
        session = session or StreamSession()
        if on_update is not None:
            session.subscribe(on_update)

        body: dict[str, Any] = {"prompt": prompt, "platform": Platform(platform).value}
        if api_key:
            body["apiKey"] = api_key
        if user_id:
            body["userId"] = user_id

        async with self._client.stream("POST", "/generate", json=body) as response:
            if not response.is_success:
                await response.aread()
                return await self._rejected(session, response)
            return await session.consume(response.aiter_bytes())

    async def _rejected(
        self, session: StreamSession, response: httpx.Response
    ) -> ClientStreamState:
        message = f"HTTP error! status: {response.status_code}"
        try:
            detail = loads_object(response.content).get("message")
        except JSONParseError:
            detail = None
        if detail:
            message = f"{message} ({detail})"
        logger.warning("generate_rejected", status=response.status_code)

        session.start()
        session.fail(message)
        return session.state

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "BlueprintStreamClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
