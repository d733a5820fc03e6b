"""
Relay Pipeline
Turns an upstream fragment stream into SSE frames and one persisted record.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from ..core import get_logger, LogContext
from ..core.id import new_request_id
from ..core.errors import ClientDisconnected, StoreUnavailable, UpstreamError, user_message_for
from ..core.stream import CoalescingBuffer, StreamCounter
from ..core.validate import GenerationRequest
from ..monitoring import MetricsCollector, metrics_collector
from ..prompts import PromptBuilder
from ..services.analytics import EVENT_ERROR, EVENT_GENERATED, EVENT_STARTED, EventSink
from ..services.store import BlueprintStatus, BlueprintStore
from .frames import ChunkFrame, CompleteFrame, ErrorFrame, StreamFrame

logger = get_logger(__name__)

DISCONNECT_REASON = "client disconnected"


class FragmentSource(Protocol):
    """Anything that can open a streamed completion (UpstreamClient)."""

    def stream_completion(
        self, system: str, user: str, api_key: str | None
    ) -> AsyncIterator[str]: ...


class FrameWriter(Protocol):
    """Downstream channel. ``send`` raises ClientDisconnected when it is gone."""

    async def send(self, frame: StreamFrame) -> None: ...


class PipelineState(str, Enum):
    """Per-run lifecycle."""

    CREATED = "created"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RelayConfig:
    """Coalescing thresholds: size in characters, interval in seconds."""

    min_chunk_chars: int = 3
    flush_interval: float = 0.030


@dataclass(frozen=True)
class RelayOutcome:
    """Result of one pipeline run."""

    blueprint_id: str | None
    status: PipelineState
    content: str
    error: str | None
    chunks_sent: int
    duration_ms: int
    disconnected: bool = False


class RelayPipeline:
    """
    One generation: Created -> Streaming -> Completed | Failed.

    The pipeline owns its coalescing buffer and content accumulator; the store
    is the only writer of record state. Every run that reaches a writer ends
    with exactly one terminal frame unless the writer itself is gone.
    """

    def __init__(
        self,
        request: GenerationRequest,
        upstream: FragmentSource,
        store: BlueprintStore,
        events: EventSink,
        prompts: PromptBuilder,
        api_key: str | None = None,
        config: RelayConfig | None = None,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.request = request
        self.upstream = upstream
        self.store = store
        self.events = events
        self.prompts = prompts
        self.api_key = api_key
        self.config = config or RelayConfig()
        self.metrics = metrics or metrics_collector
        self.clock = clock

        self.request_id = new_request_id()
        self.state = PipelineState.CREATED
        self.blueprint_id: str | None = None
        self._content = ""
        self._sent = ""
        self._chunks = 0
        self._counter = StreamCounter()
        self._started_at = 0.0
        self._ran = False

    @property
    def content(self) -> str:
        """Everything received from upstream so far."""
        return self._content

    async def run(self, writer: FrameWriter) -> RelayOutcome:
        """
        Execute the pipeline against a downstream writer.

        Returns:
            Outcome of the run

        Raises:
            RuntimeError: If this pipeline already ran
        """
        if self._ran:
            raise RuntimeError("RelayPipeline instances run exactly once")
        self._ran = True
        self._started_at = self.clock()
        platform = self.request.platform.value

        try:
            record = await self.store.create(
                self.request.prompt, self.request.platform, self.request.user_id
            )
        except Exception as e:
            error = e if isinstance(e, StoreUnavailable) else StoreUnavailable(str(e))
            logger.error(
                "store_create_failed", request_id=self.request_id, platform=platform, error=str(e)
            )
            return await self._fail(writer, error)

        self.blueprint_id = record.id
        with LogContext(request_id=self.request_id, blueprint_id=record.id, platform=platform):
            logger.info("relay_start", prompt_length=len(self.request.prompt))
            self._notify(
                EVENT_STARTED, {"platform": platform, "promptLength": len(self.request.prompt)}
            )
            self.state = PipelineState.STREAMING
            self.metrics.active_streams.inc()
            try:
                await self._stream(writer)
            except ClientDisconnected:
                return await self._abandon()
            except asyncio.CancelledError:
                await self._abandon()
                raise
            except Exception as e:
                return await self._fail(writer, e)
            else:
                return await self._complete(writer)
            finally:
                self.metrics.active_streams.dec()

    async def _stream(self, writer: FrameWriter) -> None:
        system = self.prompts.build(self.request.platform)
        user = self.prompts.build_user_message(self.request.prompt)
        fragments = self.upstream.stream_completion(system, user, self.api_key)

        buffer = CoalescingBuffer(
            min_chars=self.config.min_chunk_chars,
            max_delay=self.config.flush_interval,
            clock=self.clock,
        )
        iterator = fragments.__aiter__()
        pending: asyncio.Future | None = None

        try:
            while True:
                if pending is None:
                    pending = asyncio.ensure_future(iterator.__anext__())

                done, _ = await asyncio.wait({pending}, timeout=buffer.time_until_due())
                if not done:
                    # Interval elapsed while upstream is quiet
                    if batch := buffer.flush():
                        await self._emit(writer, batch)
                    continue

                finished, pending = pending, None
                try:
                    fragment = finished.result()
                except StopAsyncIteration:
                    break

                if not fragment:
                    continue
                self._counter.track(fragment)
                self._content += fragment
                if batch := buffer.add(fragment):
                    await self._emit(writer, batch)

            if remainder := buffer.flush():
                await self._emit(writer, remainder)
        finally:
            await self._release(iterator, pending)

    async def _release(self, iterator: AsyncIterator[str], pending: asyncio.Future | None) -> None:
        """Stop pulling from upstream and close the connection."""
        if pending is not None and not pending.done():
            pending.cancel()
            await asyncio.wait({pending})
        if pending is not None and not pending.cancelled():
            pending.exception()

        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.warning("upstream_close_failed", error=str(e))

    async def _emit(self, writer: FrameWriter, batch: str) -> None:
        self._sent += batch
        await writer.send(
            ChunkFrame(content=batch, full_content=self._sent, blueprint_id=self.blueprint_id)
        )
        self._chunks += 1
        self.metrics.record_chunk()

    async def _complete(self, writer: FrameWriter) -> RelayOutcome:
        self.state = PipelineState.COMPLETED
        await self._persist(BlueprintStatus.COMPLETE)

        disconnected = False
        try:
            await writer.send(
                CompleteFrame(blueprint_id=self.blueprint_id, full_content=self._content)
            )
        except ClientDisconnected:
            # Content is already stored as complete
            disconnected = True
            logger.info("relay_complete_unacknowledged")

        duration_ms = self._elapsed_ms()
        fragments, chars = self._counter.reset()
        logger.info("relay_complete", fragments=fragments, chars=chars, chunks=self._chunks,
                    duration_ms=duration_ms)
        self._notify(
            EVENT_GENERATED,
            {
                "platform": self.request.platform.value,
                "promptLength": len(self.request.prompt),
                "contentLength": len(self._content),
                "durationMs": duration_ms,
            },
        )
        self.metrics.record_generation("complete", self.request.platform.value, duration_ms / 1000)
        return self._outcome(None, duration_ms, disconnected)

    async def _fail(self, writer: FrameWriter, error: BaseException) -> RelayOutcome:
        self.state = PipelineState.FAILED
        message = user_message_for(error)
        kind = type(error).__name__
        logger.error("relay_failed", kind=kind, error=str(error), chars=len(self._content))
        if isinstance(error, UpstreamError):
            self.metrics.record_upstream_error(kind)

        if self.blueprint_id is not None:
            await self._persist(BlueprintStatus.ERROR)

        disconnected = False
        try:
            await writer.send(ErrorFrame(error=message, blueprint_id=self.blueprint_id))
        except ClientDisconnected:
            disconnected = True
            logger.info("relay_error_unacknowledged")

        duration_ms = self._elapsed_ms()
        self._notify(
            EVENT_ERROR,
            {
                "platform": self.request.platform.value,
                "promptLength": len(self.request.prompt),
                "error": message,
                "durationMs": duration_ms,
            },
        )
        self.metrics.record_generation("error", self.request.platform.value, duration_ms / 1000)
        return self._outcome(message, duration_ms, disconnected)

    async def _abandon(self) -> RelayOutcome:
        """Downstream went away mid-stream: keep partial content, mark error."""
        self.state = PipelineState.FAILED
        logger.warning("relay_client_disconnected", chars=len(self._content), chunks=self._chunks)
        self.metrics.record_disconnect()
        await self._persist(BlueprintStatus.ERROR)

        duration_ms = self._elapsed_ms()
        self._notify(
            EVENT_ERROR,
            {
                "platform": self.request.platform.value,
                "promptLength": len(self.request.prompt),
                "error": DISCONNECT_REASON,
                "durationMs": duration_ms,
            },
        )
        self.metrics.record_generation("disconnected", self.request.platform.value, duration_ms / 1000)
        return self._outcome(DISCONNECT_REASON, duration_ms, True)

    async def _persist(self, status: BlueprintStatus) -> bool:
        try:
            await self.store.update_content(self.blueprint_id, self._content, status)
            return True
        except Exception as e:
            logger.error("store_update_failed", status=status.value, error=str(e), exc_info=True)
            return False

    def _notify(self, event: str, properties: dict[str, Any]) -> None:
        try:
            self.events.track(event, self.request.user_id, properties)
        except Exception as e:
            logger.warning("event_sink_failed", event_name=event, error=str(e))

    def _elapsed_ms(self) -> int:
        return int((self.clock() - self._started_at) * 1000)

    def _outcome(self, error: str | None, duration_ms: int, disconnected: bool) -> RelayOutcome:
        return RelayOutcome(
            blueprint_id=self.blueprint_id,
            status=self.state,
            content=self._content,
            error=error,
            chunks_sent=self._chunks,
            duration_ms=duration_ms,
            disconnected=disconnected,
        )
