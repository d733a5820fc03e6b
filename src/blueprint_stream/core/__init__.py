"""Core utilities and infrastructure."""

from .config import Settings, get_settings
from .errors import (
    BlueprintStreamError,
    CredentialMissing,
    UpstreamError,
    Unauthorized,
    RateLimited,
    Forbidden,
    UpstreamUnavailable,
    MalformedFrame,
    StoreUnavailable,
    RequestInvalid,
    ClientDisconnected,
    user_message_for,
)
from .logging_config import configure_logging, get_logger, LogContext
from .stream import CoalescingBuffer, StreamCounter
from .json import JSONParseError, dumps, loads_object
from .id import BlueprintID, new_blueprint_id, new_request_id, extract_timestamp
from .validate import GenerationRequest, parse_generation_request, MAX_PROMPT_LENGTH


def create_container(settings: Settings | None = None, **overrides):
    """Create dependency injection container (lazy import to avoid circular deps)."""
    from .container import create_container as _create_container

    return _create_container(settings, **overrides)


__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "BlueprintStreamError",
    "CredentialMissing",
    "UpstreamError",
    "Unauthorized",
    "RateLimited",
    "Forbidden",
    "UpstreamUnavailable",
    "MalformedFrame",
    "StoreUnavailable",
    "RequestInvalid",
    "ClientDisconnected",
    "user_message_for",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # Streaming
    "CoalescingBuffer",
    "StreamCounter",
    # JSON
    "JSONParseError",
    "dumps",
    "loads_object",
    # IDs
    "BlueprintID",
    "new_blueprint_id",
    "new_request_id",
    "extract_timestamp",
    # Validation
    "GenerationRequest",
    "parse_generation_request",
    "MAX_PROMPT_LENGTH",
    # DI
    "create_container",
]
