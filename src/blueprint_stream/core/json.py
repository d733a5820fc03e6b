"""Fast JSON encoding and decoding for wire frames."""

from typing import Any

import orjson


class JSONParseError(Exception):
    """JSON parsing failed."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


def dumps(obj: Any) -> str:
    """Encode to a compact JSON string."""
    return orjson.dumps(obj).decode("utf-8")


def loads_object(data: str | bytes) -> dict[str, Any]:
    """
    Decode a JSON object.

    Raises:
        JSONParseError: If the payload is not valid JSON or not an object
    """
    try:
        result = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise JSONParseError(f"Invalid JSON: {e}", e) from e
    if not isinstance(result, dict):
        raise JSONParseError(f"Expected object, got {type(result).__name__}")
    return result
