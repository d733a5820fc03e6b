"""Input validation for generation requests."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..prompts.platforms import Platform
from .errors import RequestInvalid

MAX_PROMPT_LENGTH = 8192


class RequestValidator(BaseModel):
    """Base validator with strict configuration."""

    model_config = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True
    )


class GenerationRequest(RequestValidator):
    """Validated blueprint generation request."""

    prompt: str = Field(min_length=1, max_length=MAX_PROMPT_LENGTH)
    platform: Platform
    user_id: str | None = Field(default=None, alias="userId", max_length=128)
    api_key: str | None = Field(default=None, alias="apiKey", repr=False)

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Ensure prompt is non-empty after stripping."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Prompt cannot be empty")
        return stripped

    @field_validator("api_key", "user_id")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


def parse_generation_request(
    payload: Any, max_prompt_length: int = MAX_PROMPT_LENGTH
) -> GenerationRequest:
    """
    Validate a raw request body.

    Args:
        payload: Decoded JSON body
        max_prompt_length: Configured prompt limit (at most MAX_PROMPT_LENGTH)

    Returns:
        Immutable GenerationRequest

    Raises:
        RequestInvalid: If the body does not describe a valid request
    """
    if not isinstance(payload, dict):
        raise RequestInvalid("Request body must be a JSON object")

    try:
        request = GenerationRequest.model_validate(payload)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        first = errors[0] if errors else {"field": "body", "message": "invalid"}
        raise RequestInvalid(f"Invalid {first['field']}: {first['message']}", errors) from e

    if len(request.prompt) > max_prompt_length:
        raise RequestInvalid(
            f"Prompt length {len(request.prompt)} exceeds maximum {max_prompt_length}",
            [{"field": "prompt", "message": "too long"}],
        )
    return request
