"""
Analytics
Bounded in-memory event log behind the EventSink interface.
"""

import time
from collections import Counter, deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from ..core import get_logger
from .store import BlueprintRecord

logger = get_logger(__name__)

EVENT_STARTED = "blueprint_generation_started"
EVENT_GENERATED = "blueprint_generated"
EVENT_ERROR = "blueprint_error"

DEFAULT_CAPACITY = 10_000
HEALTHY_ERROR_RATE = 0.05


class EventSink(Protocol):
    """Fire-and-forget analytics sink."""

    def track(
        self, event: str, user_id: str | None = None, properties: dict[str, Any] | None = None
    ) -> None: ...


@dataclass(frozen=True)
class AnalyticsEvent:
    """Recorded analytics event."""

    event: str
    user_id: str | None
    properties: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AnalyticsCollector:
    """
    Capacity-bounded event collector.

    Oldest events are dropped once ``capacity`` is reached. No teardown needed.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._events: deque[AnalyticsEvent] = deque(maxlen=capacity)
        self._started = time.monotonic()

    def __len__(self) -> int:
        return len(self._events)

    def track(
        self, event: str, user_id: str | None = None, properties: dict[str, Any] | None = None
    ) -> None:
        """Record an event."""
        recorded = AnalyticsEvent(event=event, user_id=user_id, properties=dict(properties or {}))
        self._events.append(recorded)
        logger.info(
            "analytics_event", event_name=event, user_id=user_id, properties=recorded.properties
        )

    def events(self, name: str | None = None) -> list[AnalyticsEvent]:
        """Recorded events, oldest first, optionally filtered by name."""
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.event == name]

    def usage_metrics(
        self, records: Iterable[BlueprintRecord], now: datetime | None = None
    ) -> dict[str, Any]:
        """
        Summarize blueprint volume and generation outcomes.

        Args:
            records: Blueprint records to summarize
            now: Reference time (defaults to current UTC time)

        Returns:
            Usage metrics dictionary
        """
        now = now or datetime.now(timezone.utc)
        records = list(records)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = now - timedelta(days=7)
        month_start = today_start.replace(day=1)

        platforms = Counter(r.platform.value for r in records)
        prompts = Counter(
            (r.prompt[:50] + "...") if len(r.prompt) > 50 else r.prompt for r in records
        )

        generated = self.events(EVENT_GENERATED)
        errors = self.events(EVENT_ERROR)
        durations = [e.properties.get("durationMs", 0) for e in generated]
        average = sum(durations) / len(durations) if durations else 0.0
        finished = len(generated) + len(errors)
        error_rate = (len(errors) / finished) * 100 if finished else 0.0

        return {
            "totalBlueprints": len(records),
            "blueprintsToday": sum(1 for r in records if r.created_at >= today_start),
            "blueprintsThisWeek": sum(1 for r in records if r.created_at >= week_start),
            "blueprintsThisMonth": sum(1 for r in records if r.created_at >= month_start),
            "averageGenerationTime": round(average),
            "popularPlatforms": [
                {"platform": p, "count": c} for p, c in platforms.most_common()
            ],
            "popularPrompts": [
                {"prompt": p, "count": c} for p, c in prompts.most_common(10)
            ],
            "errorRate": round(error_rate, 2),
        }

    def system_health(self, now: datetime | None = None) -> dict[str, Any]:
        """Outcome-based health over the last hour."""
        now = now or datetime.now(timezone.utc)
        last_hour = now - timedelta(hours=1)
        recent = [e for e in self._events if e.timestamp >= last_hour]
        errors = sum(1 for e in recent if e.event == EVENT_ERROR)
        successes = sum(1 for e in recent if e.event == EVENT_GENERATED)
        finished = errors + successes
        healthy = finished == 0 or errors / finished < HEALTHY_ERROR_RATE

        return {
            "status": "healthy" if healthy else "degraded",
            "uptimeSeconds": round(time.monotonic() - self._started, 1),
            "errorsLastHour": errors,
            "requestsLastHour": len(recent),
            "timestamp": now.isoformat(),
        }
