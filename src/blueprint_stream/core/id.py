"""ID Generation.

Prefixed ULIDs: lexicographically sortable, timestamp-based, readable in logs.
"""

from datetime import datetime
from typing import NewType
from ulid import ULID

BlueprintID = NewType("BlueprintID", str)
"""Blueprint record identifier"""

RequestID = NewType("RequestID", str)
"""Generation request identifier"""


class Prefix:
    """ID prefix constants."""

    BLUEPRINT = "bp"
    REQUEST = "req"


def _generate(prefix: str) -> str:
    return f"{prefix}_{ULID()}"


def new_blueprint_id() -> BlueprintID:
    """Generate blueprint ID."""
    return BlueprintID(_generate(Prefix.BLUEPRINT))


def new_request_id() -> RequestID:
    """Generate request ID."""
    return RequestID(_generate(Prefix.REQUEST))


def extract_timestamp(id_str: str) -> datetime | None:
    """
    Extract creation time from a (possibly prefixed) ULID.

    Returns:
        Creation datetime, or None if the ID is not a valid ULID
    """
    raw = id_str.split("_", 1)[1] if "_" in id_str else id_str
    try:
        return ULID.from_str(raw).datetime
    except ValueError:
        return None
