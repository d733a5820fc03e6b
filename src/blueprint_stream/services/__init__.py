"""Collaborators of the relay: storage, analytics, quality scoring."""

from .store import BlueprintStore, InMemoryBlueprintStore, BlueprintRecord, BlueprintStatus
from .analytics import (
    EventSink,
    AnalyticsCollector,
    AnalyticsEvent,
    EVENT_STARTED,
    EVENT_GENERATED,
    EVENT_ERROR,
)
from .quality import QualityAssessor, KeywordQualityAssessor, QualityReport, QualityMetrics

__all__ = [
    "BlueprintStore",
    "InMemoryBlueprintStore",
    "BlueprintRecord",
    "BlueprintStatus",
    "EventSink",
    "AnalyticsCollector",
    "AnalyticsEvent",
    "EVENT_STARTED",
    "EVENT_GENERATED",
    "EVENT_ERROR",
    "QualityAssessor",
    "KeywordQualityAssessor",
    "QualityReport",
    "QualityMetrics",
]
