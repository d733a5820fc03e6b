"""Generate Handler."""

from typing import Any

from ..core import get_logger, Settings
from ..core.validate import GenerationRequest, parse_generation_request
from ..clients import UpstreamClient
from ..monitoring import MetricsCollector, metrics_collector
from ..prompts import PromptBuilder
from ..services.analytics import EventSink
from ..services.store import BlueprintStore
from ..streaming import EventStreamResponse, RelayConfig, RelayPipeline


logger = get_logger(__name__)


class GenerateHandler:
    """Builds one relay pipeline per generate request."""

    def __init__(
        self,
        settings: Settings,
        upstream: UpstreamClient,
        store: BlueprintStore,
        events: EventSink,
        prompts: PromptBuilder,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.settings = settings
        self.upstream = upstream
        self.store = store
        self.events = events
        self.prompts = prompts
        self.metrics = metrics or metrics_collector
        self.relay_config = RelayConfig(
            min_chunk_chars=settings.min_chunk_chars,
            flush_interval=settings.flush_interval_ms / 1000,
        )

    def validate(self, payload: Any) -> GenerationRequest:
        """Raises RequestInvalid before any stream is opened."""
        return parse_generation_request(payload, self.settings.max_prompt_length)

    def resolve_api_key(self, request: GenerationRequest) -> str | None:
        """Per-request key wins over the server default."""
        if request.api_key:
            return request.api_key
        return self.settings.upstream_api_key.strip() or None

    def create_pipeline(self, request: GenerationRequest) -> RelayPipeline:
        api_key = self.resolve_api_key(request)
        logger.info(
            "generate",
            platform=request.platform.value,
            prompt_length=len(request.prompt),
            has_key=api_key is not None,
            user_key=request.api_key is not None,
        )
        return RelayPipeline(
            request,
            upstream=self.upstream,
            store=self.store,
            events=self.events,
            prompts=self.prompts,
            api_key=api_key,
            config=self.relay_config,
            metrics=self.metrics,
        )

    def stream(self, payload: Any) -> EventStreamResponse:
        """
        Validate a request body and return the SSE response that runs it.

        Raises:
            RequestInvalid: If the body fails validation
        """
        return EventStreamResponse(self.create_pipeline(self.validate(payload)))
