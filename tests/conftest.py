"""Pytest configuration and fixtures."""

import asyncio
import os
from collections.abc import AsyncIterator

import pytest

from blueprint_stream.core import Settings, create_container
from blueprint_stream.core.errors import ClientDisconnected, CredentialMissing, StoreUnavailable
from blueprint_stream.core.validate import GenerationRequest
from blueprint_stream.monitoring import MetricsCollector
from blueprint_stream.prompts import Platform, PromptBuilder
from blueprint_stream.services import AnalyticsCollector, InMemoryBlueprintStore
from blueprint_stream.streaming import RelayConfig, RelayPipeline, StreamFrame


# ============================================================================
# Pytest Hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ["BLUEPRINT_LOG_LEVEL"] = "DEBUG"
    # Never let a developer's key leak into tests
    os.environ["BLUEPRINT_UPSTREAM_API_KEY"] = ""
    os.environ.pop("DEEPSEEK_API_KEY", None)


# ============================================================================
# Test Doubles
# ============================================================================

class FakeUpstream:
    """Scripted fragment source standing in for UpstreamClient."""

    def __init__(
        self,
        fragments: list[str] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        valid_key: str = "sk-valid",
    ) -> None:
        self.fragments = fragments or []
        self.error = error
        self.delay = delay
        self.valid_key = valid_key
        self.calls: list[tuple[str, str, str | None]] = []
        self.yielded = 0
        self.closed = False

    def stream_completion(self, system: str, user: str, api_key: str | None) -> AsyncIterator[str]:
        if not api_key:
            raise CredentialMissing()
        self.calls.append((system, user, api_key))
        return self._fragments()

    async def _fragments(self) -> AsyncIterator[str]:
        try:
            for fragment in self.fragments:
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.yielded += 1
                yield fragment
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True

    async def verify_credential(self, api_key: str | None) -> bool:
        return api_key == self.valid_key

    async def aclose(self) -> None:
        pass


class RecordingWriter:
    """Collects frames; optionally disconnects after ``disconnect_after`` frames."""

    def __init__(self, disconnect_after: int | None = None) -> None:
        self.frames: list[StreamFrame] = []
        self.disconnect_after = disconnect_after
        self.attempts = 0
        self.failed_attempts = 0

    async def send(self, frame: StreamFrame) -> None:
        self.attempts += 1
        if self.disconnect_after is not None and len(self.frames) >= self.disconnect_after:
            self.failed_attempts += 1
            raise ClientDisconnected()
        self.frames.append(frame)

    @property
    def types(self) -> list[str]:
        return [frame.type for frame in self.frames]


class FlakyStore(InMemoryBlueprintStore):
    """In-memory store that can fail creation or updates."""

    def __init__(self, fail_create: bool = False, fail_update: bool = False) -> None:
        super().__init__()
        self.fail_create = fail_create
        self.fail_update = fail_update

    async def create(self, prompt, platform, user_id=None):
        if self.fail_create:
            raise StoreUnavailable("database offline")
        return await super().create(prompt, platform, user_id)

    async def update_content(self, blueprint_id, content, status):
        if self.fail_update:
            raise StoreUnavailable("database offline")
        return await super().update_content(blueprint_id, content, status)


class BrokenSink:
    """Event sink that always fails."""

    def __init__(self) -> None:
        self.attempts = 0

    def track(self, event, user_id=None, properties=None) -> None:
        self.attempts += 1
        raise RuntimeError("analytics backend down")


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Test settings."""
    return Settings(upstream_api_key="", min_chunk_chars=3, flush_interval_ms=30.0)


@pytest.fixture
def store():
    return InMemoryBlueprintStore()


@pytest.fixture
def analytics():
    return AnalyticsCollector(capacity=100)


@pytest.fixture
def metrics():
    """Metrics on a private registry."""
    return MetricsCollector()


@pytest.fixture
def prompt_builder():
    return PromptBuilder()


@pytest.fixture
def generation_request():
    return GenerationRequest(
        prompt="A habit tracker with streaks", platform=Platform.CURSOR, user_id="user-1"
    )


@pytest.fixture
def make_pipeline(store, analytics, metrics, prompt_builder, generation_request):
    """Factory for pipelines wired to in-memory collaborators."""

    def factory(upstream, **overrides):
        options = {
            "store": store,
            "events": analytics,
            "prompts": prompt_builder,
            "api_key": "sk-test",
            "config": RelayConfig(min_chunk_chars=3, flush_interval=0.030),
            "metrics": metrics,
        }
        options.update(overrides)
        request = options.pop("request", generation_request)
        return RelayPipeline(request, upstream=upstream, **options)

    return factory


@pytest.fixture
def di_container(settings, store):
    """Dependency injection container with a scripted upstream."""
    upstream = FakeUpstream(["# Blueprint", "\n\n", "## Stack", "\nFastAPI"])
    return create_container(settings, upstream=upstream, store=store)


@pytest.fixture
def fake_upstream():
    """FakeUpstream class, for building scripted sources in tests."""
    return FakeUpstream


@pytest.fixture
def recording_writer():
    return RecordingWriter


@pytest.fixture
def flaky_store():
    return FlakyStore


@pytest.fixture
def broken_sink():
    return BrokenSink()
