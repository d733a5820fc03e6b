"""Dependency Injection Container."""

from injector import Injector, Module, provider, singleton

from .config import Settings, get_settings
from ..clients import UpstreamClient, UpstreamConfig
from ..handlers import GenerateHandler
from ..monitoring import MetricsCollector, metrics_collector
from ..prompts import PromptBuilder
from ..services import (
    AnalyticsCollector,
    BlueprintStore,
    InMemoryBlueprintStore,
    KeywordQualityAssessor,
    QualityAssessor,
)


class CoreModule(Module):
    """Core dependencies."""

    def __init__(
        self,
        settings: Settings | None = None,
        upstream: UpstreamClient | None = None,
        store: BlueprintStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.upstream = upstream
        self.store = store

    @singleton
    @provider
    def provide_settings(self) -> Settings:
        return self.settings

    @singleton
    @provider
    def provide_upstream(self, settings: Settings) -> UpstreamClient:
        """Provide the shared provider client."""
        if self.upstream is not None:
            return self.upstream
        return UpstreamClient(UpstreamConfig.from_settings(settings))

    @singleton
    @provider
    def provide_store(self) -> BlueprintStore:
        return self.store if self.store is not None else InMemoryBlueprintStore()

    @singleton
    @provider
    def provide_analytics(self, settings: Settings) -> AnalyticsCollector:
        return AnalyticsCollector(capacity=settings.analytics_capacity)

    @singleton
    @provider
    def provide_prompt_builder(self) -> PromptBuilder:
        return PromptBuilder()

    @singleton
    @provider
    def provide_quality_assessor(self) -> QualityAssessor:
        return KeywordQualityAssessor()

    @singleton
    @provider
    def provide_metrics(self) -> MetricsCollector:
        return metrics_collector

    @singleton
    @provider
    def provide_generate_handler(
        self,
        settings: Settings,
        upstream: UpstreamClient,
        store: BlueprintStore,
        analytics: AnalyticsCollector,
        prompts: PromptBuilder,
        metrics: MetricsCollector,
    ) -> GenerateHandler:
        """Provide generate handler with all dependencies."""
        return GenerateHandler(
            settings=settings,
            upstream=upstream,
            store=store,
            events=analytics,
            prompts=prompts,
            metrics=metrics,
        )


def create_container(
    settings: Settings | None = None,
    upstream: UpstreamClient | None = None,
    store: BlueprintStore | None = None,
) -> Injector:
    """Create configured injector."""
    return Injector([CoreModule(settings, upstream=upstream, store=store)])
