"""Tests for the relay pipeline."""

import asyncio

import httpx
import pytest
import respx
from hypothesis import given, settings as hypothesis_settings, strategies as st

from blueprint_stream.clients import UpstreamClient, UpstreamConfig
from blueprint_stream.core.errors import Unauthorized, UpstreamUnavailable
from blueprint_stream.core.validate import GenerationRequest
from blueprint_stream.monitoring import MetricsCollector
from blueprint_stream.prompts import Platform, PromptBuilder
from blueprint_stream.services import (
    AnalyticsCollector,
    BlueprintStatus,
    InMemoryBlueprintStore,
    EVENT_ERROR,
    EVENT_GENERATED,
    EVENT_STARTED,
)
from blueprint_stream.streaming import (
    ChunkFrame,
    CompleteFrame,
    ErrorFrame,
    PipelineState,
    RelayConfig,
    RelayPipeline,
)

UPSTREAM_URL = "https://api.deepseek.com"


def upstream_error_count(metrics, kind):
    return metrics.registry.get_sample_value("blueprint_upstream_errors_total", {"kind": kind})


# ============================================================================
# Scenarios
# ============================================================================

@pytest.mark.unit
async def test_relay_happy_path(make_pipeline, fake_upstream, recording_writer, store, analytics):
    """Fragments arrive as chunk frames followed by one complete frame."""
    upstream = fake_upstream(["Hello", " ", "world"])
    writer = recording_writer()

    outcome = await make_pipeline(upstream).run(writer)

    assert outcome.status == PipelineState.COMPLETED
    assert outcome.content == "Hello world"
    assert writer.types.count("chunk") >= 2
    assert writer.types[-1] == "complete"
    assert writer.types.count("complete") == 1

    chunks = [f for f in writer.frames if isinstance(f, ChunkFrame)]
    assert "".join(c.content for c in chunks) == "Hello world"
    assert all(c.blueprint_id == outcome.blueprint_id for c in chunks)
    assert writer.frames[-1].full_content == "Hello world"

    record = await store.get_by_id(outcome.blueprint_id)
    assert record.status == BlueprintStatus.COMPLETE
    assert record.content == "Hello world"
    assert store.status_history(outcome.blueprint_id) == [
        BlueprintStatus.GENERATING,
        BlueprintStatus.COMPLETE,
    ]

    assert [e.event for e in analytics.events()] == [EVENT_STARTED, EVENT_GENERATED]
    generated = analytics.events(EVENT_GENERATED)[0]
    assert generated.user_id == "user-1"
    assert generated.properties["platform"] == "cursor"
    assert generated.properties["contentLength"] == len("Hello world")
    assert "durationMs" in generated.properties


@pytest.mark.unit
async def test_relay_missing_credential(
    make_pipeline, fake_upstream, recording_writer, store, analytics, metrics
):
    """No key: exactly one error frame, record ends in error."""
    upstream = fake_upstream(["never"])
    writer = recording_writer()

    outcome = await make_pipeline(upstream, api_key=None).run(writer)

    assert outcome.status == PipelineState.FAILED
    assert writer.types == ["error"]
    assert writer.frames[0].error.startswith("API key required")
    assert writer.frames[0].blueprint_id == outcome.blueprint_id
    assert upstream.calls == []

    record = await store.get_by_id(outcome.blueprint_id)
    assert record.status == BlueprintStatus.ERROR
    assert [e.event for e in analytics.events()] == [EVENT_STARTED, EVENT_ERROR]
    # Not an upstream failure
    assert upstream_error_count(metrics, "CredentialMissing") is None


@pytest.mark.unit
async def test_relay_upstream_unauthorized(
    make_pipeline, fake_upstream, recording_writer, store, metrics
):
    """401 from the provider surfaces as the invalid-key message."""
    upstream = fake_upstream(error=Unauthorized("HTTP 401: bad key", status_code=401))
    writer = recording_writer()

    outcome = await make_pipeline(upstream).run(writer)

    assert writer.types == ["error"]
    assert writer.frames[0].error == "Invalid API key. Please check your DeepSeek API key in Settings."
    assert outcome.error == writer.frames[0].error
    record = await store.get_by_id(outcome.blueprint_id)
    assert record.status == BlueprintStatus.ERROR
    assert upstream_error_count(metrics, "Unauthorized") == 1


@pytest.mark.unit
async def test_relay_mid_stream_failure_keeps_partial(
    make_pipeline, fake_upstream, recording_writer, store, analytics
):
    """Failure after some content: chunks, then one error frame; content persisted."""
    upstream = fake_upstream(["partial"], error=UpstreamUnavailable("connection reset"))
    writer = recording_writer()

    outcome = await make_pipeline(upstream).run(writer)

    assert writer.types == ["chunk", "error"]
    assert writer.frames[0].content == "partial"
    assert writer.frames[1].error == "Upstream provider unavailable: connection reset"

    record = await store.get_by_id(outcome.blueprint_id)
    assert record.status == BlueprintStatus.ERROR
    assert "partial" in record.content

    error_event = analytics.events(EVENT_ERROR)[0]
    assert error_event.properties["error"] == "Upstream provider unavailable: connection reset"


@pytest.mark.unit
async def test_relay_store_create_failure(
    make_pipeline, fake_upstream, recording_writer, flaky_store, metrics
):
    """Store down at start: single error frame without a blueprint id."""
    upstream = fake_upstream(["never"])
    writer = recording_writer()

    outcome = await make_pipeline(upstream, store=flaky_store(fail_create=True)).run(writer)

    assert writer.types == ["error"]
    assert isinstance(writer.frames[0], ErrorFrame)
    assert writer.frames[0].blueprint_id is None
    assert writer.frames[0].error == "Blueprint storage unavailable. Please try again."
    assert outcome.blueprint_id is None
    assert upstream.calls == []
    assert upstream_error_count(metrics, "StoreUnavailable") is None


@pytest.mark.unit
async def test_relay_unexpected_error_uses_generic_message(
    make_pipeline, fake_upstream, recording_writer
):
    upstream = fake_upstream(["abc"], error=KeyError("boom"))
    writer = recording_writer()

    await make_pipeline(upstream).run(writer)

    assert writer.frames[-1].error == "Generation failed. Please try again."


@pytest.mark.unit
async def test_relay_tolerates_malformed_upstream_line(make_pipeline, recording_writer, store):
    """An unparsable provider line between two valid ones is skipped, not fatal."""
    body = (
        b'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\n'
        b"data: {not json\n\n"
        b'data: {"choices":[{"delta":{"content":" world"}}]}\n\n'
        b"data: [DONE]\n\n"
    )
    writer = recording_writer()

    with respx.mock(base_url=UPSTREAM_URL) as router:
        router.post("/chat/completions").mock(return_value=httpx.Response(200, content=body))
        async with UpstreamClient(UpstreamConfig(base_url=UPSTREAM_URL)) as upstream:
            outcome = await make_pipeline(upstream).run(writer)

    assert "error" not in writer.types
    assert writer.types[-1] == "complete"
    chunks = [f for f in writer.frames if isinstance(f, ChunkFrame)]
    assert "".join(c.content for c in chunks) == "Hello world"
    assert outcome.content == "Hello world"

    record = await store.get_by_id(outcome.blueprint_id)
    assert record.status == BlueprintStatus.COMPLETE
    assert record.content == "Hello world"


# ============================================================================
# Disconnects and collaborator failures
# ============================================================================

@pytest.mark.unit
async def test_relay_client_disconnect(
    make_pipeline, fake_upstream, recording_writer, store, analytics, metrics
):
    """Writer gone: stop pulling upstream, mark record error, no more frames."""
    upstream = fake_upstream(["aaa", "bbb", "ccc", "ddd"])
    writer = recording_writer(disconnect_after=1)

    outcome = await make_pipeline(upstream).run(writer)

    assert outcome.disconnected is True
    assert outcome.error == "client disconnected"
    assert writer.types == ["chunk"]
    assert writer.attempts == 2
    assert writer.failed_attempts == 1
    assert upstream.closed is True
    assert upstream.yielded < 4

    record = await store.get_by_id(outcome.blueprint_id)
    assert record.status == BlueprintStatus.ERROR
    assert record.content.startswith("aaa")

    error_event = analytics.events(EVENT_ERROR)[0]
    assert error_event.properties["error"] == "client disconnected"
    assert metrics.client_disconnects._value.get() == 1


@pytest.mark.unit
async def test_relay_persistence_failure_still_completes(
    make_pipeline, fake_upstream, recording_writer, flaky_store
):
    """Update failure at completion is logged; complete frame still sent."""
    failing = flaky_store(fail_update=True)
    writer = recording_writer()

    outcome = await make_pipeline(fake_upstream(["one", "two"]), store=failing).run(writer)

    assert writer.types[-1] == "complete"
    assert outcome.status == PipelineState.COMPLETED
    record = await failing.get_by_id(outcome.blueprint_id)
    assert record.status == BlueprintStatus.GENERATING


@pytest.mark.unit
async def test_relay_event_sink_failure_is_ignored(
    make_pipeline, fake_upstream, recording_writer, broken_sink
):
    writer = recording_writer()

    outcome = await make_pipeline(fake_upstream(["abc"]), events=broken_sink).run(writer)

    assert writer.types == ["chunk", "complete"]
    assert outcome.status == PipelineState.COMPLETED
    assert broken_sink.attempts == 2


@pytest.mark.unit
async def test_relay_runs_once(make_pipeline, fake_upstream, recording_writer):
    pipeline = make_pipeline(fake_upstream(["abc"]))
    await pipeline.run(recording_writer())

    with pytest.raises(RuntimeError):
        await pipeline.run(recording_writer())


@pytest.mark.unit
async def test_relay_prompts_reach_upstream(make_pipeline, fake_upstream, recording_writer):
    upstream = fake_upstream(["abc"])

    await make_pipeline(upstream).run(recording_writer())

    system, user, api_key = upstream.calls[0]
    assert "CURSOR OPTIMIZATION" in system
    assert user.startswith("Generate a comprehensive technical blueprint for: A habit tracker")
    assert api_key == "sk-test"


# ============================================================================
# Coalescing
# ============================================================================

class BurstThenPause:
    """Yields a burst of fragments, then stalls before the last one."""

    def __init__(self, burst: list[str], tail: str, pause: float) -> None:
        self.burst = burst
        self.tail = tail
        self.pause = pause

    def stream_completion(self, system, user, api_key):
        return self._fragments()

    async def _fragments(self):
        for fragment in self.burst:
            yield fragment
        await asyncio.sleep(self.pause)
        yield self.tail


@pytest.mark.unit
async def test_relay_flushes_on_interval_while_upstream_is_quiet(
    make_pipeline, recording_writer
):
    """Small fragments are not held back while waiting for the next one."""
    source = BurstThenPause(["a", "b"], tail="c", pause=0.2)
    writer = recording_writer()
    config = RelayConfig(min_chunk_chars=100, flush_interval=0.02)

    await make_pipeline(source, config=config).run(writer)

    chunks = [f.content for f in writer.frames if isinstance(f, ChunkFrame)]
    assert chunks == ["ab", "c"]
    assert isinstance(writer.frames[-1], CompleteFrame)


@pytest.mark.unit
async def test_relay_full_content_grows_monotonically(make_pipeline, fake_upstream, recording_writer):
    writer = recording_writer()

    await make_pipeline(fake_upstream(["ab", "cd", "ef", "g"])).run(writer)

    seen = ""
    for frame in writer.frames:
        if isinstance(frame, ChunkFrame):
            assert frame.full_content == seen + frame.content
            seen = frame.full_content


class ListSource:
    def __init__(self, fragments):
        self.fragments = fragments

    def stream_completion(self, system, user, api_key):
        return self._fragments()

    async def _fragments(self):
        for fragment in self.fragments:
            yield fragment


class ListWriter:
    def __init__(self):
        self.frames = []

    async def send(self, frame):
        self.frames.append(frame)


def _relay(fragments: list[str], min_chars: int):
    request = GenerationRequest(prompt="todo app", platform=Platform.REPLIT)
    pipeline = RelayPipeline(
        request,
        upstream=ListSource(fragments),
        store=InMemoryBlueprintStore(),
        events=AnalyticsCollector(capacity=10),
        prompts=PromptBuilder(),
        api_key="sk-test",
        # Interval far away so only the size threshold applies
        config=RelayConfig(min_chunk_chars=min_chars, flush_interval=60.0),
        metrics=MetricsCollector(),
    )
    writer = ListWriter()
    outcome = asyncio.run(pipeline.run(writer))
    return outcome, writer.frames


@pytest.mark.unit
@hypothesis_settings(max_examples=50, deadline=None)
@given(fragments=st.lists(st.text(max_size=12), max_size=20))
def test_relay_output_is_concatenation_of_fragments(fragments):
    outcome, frames = _relay(fragments, min_chars=3)

    expected = "".join(fragments)
    chunks = [f for f in frames if isinstance(f, ChunkFrame)]
    assert "".join(c.content for c in chunks) == expected
    assert isinstance(frames[-1], CompleteFrame)
    assert frames[-1].full_content == expected
    assert outcome.content == expected


@pytest.mark.unit
@hypothesis_settings(max_examples=50, deadline=None)
@given(
    fragments=st.lists(st.text(min_size=1, max_size=8), min_size=1, max_size=20),
    min_chars=st.integers(min_value=1, max_value=16),
)
def test_relay_chunks_respect_size_threshold(fragments, min_chars):
    _, frames = _relay(fragments, min_chars=min_chars)

    chunks = [f.content for f in frames if isinstance(f, ChunkFrame)]
    assert len(chunks) <= len(fragments)
    # Only the final remainder may be shorter than the threshold
    assert all(len(c) >= min_chars for c in chunks[:-1])
