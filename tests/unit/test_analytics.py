"""Tests for analytics collection and summaries."""

from datetime import datetime, timedelta, timezone

import pytest

from blueprint_stream.prompts import Platform
from blueprint_stream.services import (
    AnalyticsCollector,
    BlueprintRecord,
    EVENT_ERROR,
    EVENT_GENERATED,
    EVENT_STARTED,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def record(prompt: str, platform: Platform, created_at: datetime) -> BlueprintRecord:
    return BlueprintRecord(
        id=f"bp_{prompt}", prompt=prompt, platform=platform, created_at=created_at, updated_at=created_at
    )


@pytest.mark.unit
def test_track_and_filter(analytics):
    analytics.track(EVENT_STARTED, "u1", {"platform": "v0"})
    analytics.track(EVENT_GENERATED, "u1", {"durationMs": 1200})

    assert len(analytics) == 2
    assert [e.event for e in analytics.events(EVENT_GENERATED)] == [EVENT_GENERATED]
    assert analytics.events()[0].properties == {"platform": "v0"}


@pytest.mark.unit
def test_capacity_drops_oldest():
    collector = AnalyticsCollector(capacity=3)
    for i in range(5):
        collector.track("tick", None, {"i": i})

    assert [e.properties["i"] for e in collector.events()] == [2, 3, 4]


@pytest.mark.unit
def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        AnalyticsCollector(capacity=0)


@pytest.mark.unit
def test_usage_metrics(analytics):
    records = [
        record("today", Platform.REPLIT, NOW - timedelta(hours=1)),
        record("yesterday", Platform.REPLIT, NOW - timedelta(days=1)),
        record("older", Platform.CURSOR, NOW - timedelta(days=10)),
        record("x" * 60, Platform.BOLT, NOW - timedelta(days=40)),
    ]
    analytics.track(EVENT_GENERATED, None, {"durationMs": 1000})
    analytics.track(EVENT_GENERATED, None, {"durationMs": 3000})
    analytics.track(EVENT_ERROR, None, {"error": "boom"})

    metrics = analytics.usage_metrics(records, now=NOW)

    assert metrics["totalBlueprints"] == 4
    assert metrics["blueprintsToday"] == 1
    assert metrics["blueprintsThisWeek"] == 2
    assert metrics["blueprintsThisMonth"] == 3
    assert metrics["averageGenerationTime"] == 2000
    assert metrics["popularPlatforms"][0] == {"platform": "replit", "count": 2}
    assert {"prompt": "x" * 50 + "...", "count": 1} in metrics["popularPrompts"]
    assert metrics["errorRate"] == pytest.approx(33.33)


@pytest.mark.unit
def test_usage_metrics_empty(analytics):
    metrics = analytics.usage_metrics([], now=NOW)

    assert metrics["totalBlueprints"] == 0
    assert metrics["averageGenerationTime"] == 0
    assert metrics["errorRate"] == 0


@pytest.mark.unit
def test_system_health_degrades_with_errors(analytics):
    assert analytics.system_health()["status"] == "healthy"

    for _ in range(9):
        analytics.track(EVENT_GENERATED, None, {})
    analytics.track(EVENT_ERROR, None, {})

    health = analytics.system_health()
    assert health["status"] == "degraded"
    assert health["errorsLastHour"] == 1
    assert health["requestsLastHour"] == 10
    assert health["uptimeSeconds"] >= 0
