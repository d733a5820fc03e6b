"""
Logging
structlog setup for the relay. Every event carries the service name and any
request context bound with LogContext (request id, blueprint id, platform).
"""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "blueprint-stream"

# Per-request chatter from the HTTP stack; the relay logs its own summary
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"


def add_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structured logging for the service.

    Safe to call more than once; the last call wins.

    Args:
        level: Log level name; unknown names fall back to INFO
        json_logs: Emit one JSON object per line instead of console output
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                JSON_FIELDS,
                rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
                static_fields={"service": SERVICE_NAME},
            )
        )
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_service,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Bind key-value context to every log event inside the block.

    Used by the relay so that all events of one generation share its
    request id and blueprint id, including events from the upstream client.
    Only the keys bound here are removed on exit.
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())
