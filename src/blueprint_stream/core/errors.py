"""Error taxonomy for the blueprint stream service."""


class BlueprintStreamError(Exception):
    """Base error. ``user_message`` is safe to show to end users."""

    user_message = "Generation failed. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class CredentialMissing(BlueprintStreamError):
    """No provider credential was supplied and no server default exists."""

    user_message = (
        "API key required. Add your DeepSeek API key in Settings to generate blueprints."
    )


class UpstreamError(BlueprintStreamError):
    """Upstream provider failure."""

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class Unauthorized(UpstreamError):
    user_message = "Invalid API key. Please check your DeepSeek API key in Settings."


class RateLimited(UpstreamError):
    user_message = "Rate limit exceeded. Please try again in a few minutes."


class Forbidden(UpstreamError):
    user_message = "Access forbidden. Check your API key permissions."


class UpstreamUnavailable(UpstreamError):
    """Network failure, unclassified status, or missing body."""

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message, status_code)
        detail = message or "no response"
        self.user_message = f"Upstream provider unavailable: {detail}"


class MalformedFrame(BlueprintStreamError):
    """A single upstream event could not be parsed. Skipped, never fatal."""

    def __init__(self, message: str | None = None, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class StoreUnavailable(BlueprintStreamError):
    user_message = "Blueprint storage unavailable. Please try again."


class RequestInvalid(BlueprintStreamError):
    """Request failed validation before any stream was opened."""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.user_message = message
        self.errors = errors or []


class ClientDisconnected(BlueprintStreamError):
    """Downstream consumer went away; no more frames can be written."""

    user_message = "client disconnected"


def user_message_for(error: BaseException) -> str:
    """Human-readable message for an SSE error frame."""
    if isinstance(error, BlueprintStreamError):
        return error.user_message
    return BlueprintStreamError.user_message
