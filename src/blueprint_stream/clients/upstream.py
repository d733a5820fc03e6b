"""Streaming chat-completion client for the upstream LLM provider."""

from collections.abc import AsyncIterator
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core import get_logger
from ..core.config import Settings
from ..core.errors import (
    CredentialMissing,
    Forbidden,
    MalformedFrame,
    RateLimited,
    Unauthorized,
    UpstreamError,
    UpstreamUnavailable,
)
from ..core.json import JSONParseError, loads_object

logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"


class UpstreamConfig(BaseModel):
    """Type-safe provider configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default="https://api.deepseek.com")
    model: str = Field(default="deepseek-chat")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8192, ge=1)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    frequency_penalty: float = Field(default=0.1, ge=-2.0, le=2.0)
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=120.0, gt=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UpstreamConfig":
        return cls(
            base_url=settings.upstream_base_url,
            model=settings.upstream_model,
            temperature=settings.upstream_temperature,
            max_tokens=settings.upstream_max_tokens,
            top_p=settings.upstream_top_p,
            frequency_penalty=settings.upstream_frequency_penalty,
            connect_timeout=settings.upstream_connect_timeout,
            read_timeout=settings.upstream_read_timeout,
        )


@dataclass(frozen=True)
class UpstreamEvent:
    """One decoded event from the provider stream."""

    content: str | None = None
    finish_reason: str | None = None
    done: bool = False


def parse_event_line(line: str) -> UpstreamEvent | None:
    """
    Decode a single line of the provider's SSE body.

    Args:
        line: Raw line without its newline

    Returns:
        Decoded event, or None for lines that carry no event (blank lines,
        keep-alive comments, non-data fields)

    Raises:
        MalformedFrame: If a data payload is not the expected structure
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None

    payload = line[5:].strip()
    if not payload:
        return None
    if payload == DONE_SENTINEL:
        return UpstreamEvent(done=True)

    try:
        parsed = loads_object(payload)
    except JSONParseError as e:
        raise MalformedFrame(f"Unparsable event: {e}", raw=payload) from e

    choices = parsed.get("choices")
    if not isinstance(choices, list):
        raise MalformedFrame("Event has no choices list", raw=payload)
    if not choices:
        # Usage-only trailer
        return UpstreamEvent()

    choice = choices[0]
    if not isinstance(choice, dict):
        raise MalformedFrame("Choice is not an object", raw=payload)

    delta = choice.get("delta") or {}
    if not isinstance(delta, dict):
        raise MalformedFrame("Delta is not an object", raw=payload)

    content = delta.get("content")
    if content is not None and not isinstance(content, str):
        raise MalformedFrame("Delta content is not a string", raw=payload)

    return UpstreamEvent(content=content or None, finish_reason=choice.get("finish_reason"))


def _error_detail(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    try:
        error = loads_object(text).get("error")
    except JSONParseError:
        return text[:200]
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return text[:200]


def classify_status(status_code: int, detail: str = "") -> UpstreamError:
    """Map a non-2xx provider status to an error kind."""
    message = f"HTTP {status_code}: {detail}" if detail else f"HTTP {status_code}"
    if status_code == 401:
        return Unauthorized(message, status_code)
    if status_code == 403:
        return Forbidden(message, status_code)
    if status_code == 429:
        return RateLimited(message, status_code)
    return UpstreamUnavailable(message, status_code)


class UpstreamClient:
    """
    Client for the provider's streamed chat-completions endpoint.

    Each call to ``stream_completion`` opens one HTTP request and yields text
    fragments lazily. The sequence is finite and not restartable.
    """

    def __init__(
        self, config: UpstreamConfig | None = None, client: httpx.AsyncClient | None = None
    ) -> None:
        """
        Initialize upstream client.

        Args:
            config: Provider configuration
            client: Preconfigured httpx client (tests, connection sharing)
        """
        self.config = config or UpstreamConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            timeout=httpx.Timeout(self.config.read_timeout, connect=self.config.connect_timeout),
        )
        logger.info("upstream_client_init", url=self.config.base_url, model=self.config.model)

    def build_payload(self, system: str, user: str) -> dict:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": True,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "top_p": self.config.top_p,
            "frequency_penalty": self.config.frequency_penalty,
        }

    def stream_completion(
        self, system: str, user: str, api_key: str | None
    ) -> AsyncIterator[str]:
        """
        Open a streamed completion.

        Args:
            system: System instructions
            user: User message
            api_key: Provider credential

        Returns:
            Async iterator of non-empty text fragments

        Raises:
            CredentialMissing: Immediately, if no credential is given
        """
        if not api_key or not api_key.strip():
            raise CredentialMissing()
        return self._fragments(self.build_payload(system, user), api_key.strip())

    async def _fragments(self, payload: dict, api_key: str) -> AsyncIterator[str]:
        headers = {"Authorization": f"Bearer {api_key}", "Accept": "text/event-stream"}
        events = 0
        chars = 0

        try:
            async with self._client.stream(
                "POST", "/chat/completions", json=payload, headers=headers
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    error = classify_status(response.status_code, _error_detail(body))
                    logger.warning(
                        "upstream_rejected", status=response.status_code, error=str(error)
                    )
                    raise error

                async for line in response.aiter_lines():
                    try:
                        event = parse_event_line(line)
                    except MalformedFrame as e:
                        logger.warning("upstream_malformed_frame", error=str(e), raw=e.raw[:200])
                        continue
                    if event is None:
                        continue

                    events += 1
                    if event.done:
                        logger.info("upstream_done", events=events, chars=chars)
                        return
                    if event.finish_reason == "length":
                        logger.warning("upstream_truncated", chars=chars)
                    elif event.finish_reason:
                        logger.debug("upstream_finish", reason=event.finish_reason)
                    if event.content:
                        chars += len(event.content)
                        yield event.content

                if events == 0:
                    raise UpstreamUnavailable("stream closed before any data")
                logger.info("upstream_closed", events=events, chars=chars)
        except httpx.HTTPError as e:
            logger.warning("upstream_http_error", error=str(e))
            raise UpstreamUnavailable(str(e) or type(e).__name__) from e

    async def verify_credential(self, api_key: str | None) -> bool:
        """
        Check a credential against the provider's model listing.

        Returns:
            True if the provider accepts the key
        """
        if not api_key or not api_key.strip():
            return False
        try:
            response = await self._client.get(
                "/models", headers={"Authorization": f"Bearer {api_key.strip()}"}
            )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("verify_credential_failed", error=str(e))
            return False

    async def aclose(self) -> None:
        """Close HTTP client"""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
