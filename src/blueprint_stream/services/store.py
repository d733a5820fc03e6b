"""
Blueprint Store
Persistence of blueprint records.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from ..core import get_logger
from ..core.errors import StoreUnavailable
from ..core.id import new_blueprint_id
from ..prompts.platforms import Platform

logger = get_logger(__name__)


class BlueprintStatus(str, Enum):
    """Record lifecycle status."""

    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({BlueprintStatus.COMPLETE, BlueprintStatus.ERROR})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BlueprintRecord(BaseModel):
    """Stored blueprint. Immutable; updates produce a new record."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str
    prompt: str
    platform: Platform
    user_id: str | None = None
    content: str = ""
    status: BlueprintStatus = BlueprintStatus.GENERATING
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def to_api(self) -> dict:
        """JSON-ready representation."""
        return self.model_dump(mode="json")


class BlueprintStore(Protocol):
    """Persistence interface consumed by the relay and the HTTP layer."""

    async def create(
        self, prompt: str, platform: Platform, user_id: str | None = None
    ) -> BlueprintRecord: ...

    async def update_content(
        self, blueprint_id: str, content: str, status: BlueprintStatus
    ) -> BlueprintRecord: ...

    async def get_by_id(self, blueprint_id: str) -> BlueprintRecord | None: ...

    async def list_for_user(self, user_id: str) -> list[BlueprintRecord]: ...

    async def list_recent(self, limit: int | None = 10) -> list[BlueprintRecord]: ...

    async def delete(self, blueprint_id: str) -> bool: ...


class InMemoryBlueprintStore:
    """
    Process-local store.

    Writes to one record are serialized with a per-record lock; different
    records proceed independently. Status leaves ``generating`` at most once.
    """

    def __init__(self) -> None:
        self._records: dict[str, BlueprintRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._history: dict[str, list[BlueprintStatus]] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def create(
        self, prompt: str, platform: Platform, user_id: str | None = None
    ) -> BlueprintRecord:
        record = BlueprintRecord(
            id=new_blueprint_id(), prompt=prompt, platform=platform, user_id=user_id
        )
        self._records[record.id] = record
        self._locks[record.id] = asyncio.Lock()
        self._history[record.id] = [record.status]
        logger.debug("blueprint_created", blueprint_id=record.id, platform=record.platform.value)
        return record

    async def update_content(
        self, blueprint_id: str, content: str, status: BlueprintStatus
    ) -> BlueprintRecord:
        lock = self._locks.get(blueprint_id)
        if lock is None:
            raise StoreUnavailable(f"Blueprint {blueprint_id} not found")

        async with lock:
            current = self._records.get(blueprint_id)
            if current is None:
                raise StoreUnavailable(f"Blueprint {blueprint_id} not found")
            status = BlueprintStatus(status)
            if current.status in TERMINAL_STATUSES:
                raise ValueError(
                    f"Blueprint {blueprint_id} is already {current.status.value}"
                )
            updated = current.model_copy(
                update={"content": content, "status": status, "updated_at": _now()}
            )
            self._records[blueprint_id] = updated
            if status != current.status:
                self._history[blueprint_id].append(status)
            return updated

    async def get_by_id(self, blueprint_id: str) -> BlueprintRecord | None:
        return self._records.get(blueprint_id)

    async def list_for_user(self, user_id: str) -> list[BlueprintRecord]:
        records = [r for r in self._records.values() if r.user_id == user_id]
        return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)

    async def list_recent(self, limit: int | None = 10) -> list[BlueprintRecord]:
        records = sorted(self._records.values(), key=lambda r: (r.created_at, r.id), reverse=True)
        return records if limit is None else records[:limit]

    async def delete(self, blueprint_id: str) -> bool:
        lock = self._locks.get(blueprint_id)
        if lock is None:
            return False
        async with lock:
            removed = self._records.pop(blueprint_id, None) is not None
        self._locks.pop(blueprint_id, None)
        self._history.pop(blueprint_id, None)
        return removed

    def status_history(self, blueprint_id: str) -> list[BlueprintStatus]:
        """Status sequence observed for a record."""
        return list(self._history.get(blueprint_id, []))
