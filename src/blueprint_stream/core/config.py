"""Configuration Management."""

import os
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="BLUEPRINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=8000, gt=0, description="HTTP port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed origins")

    # Upstream provider (OpenAI-compatible chat completions)
    upstream_base_url: str = Field(
        default="https://api.deepseek.com", description="Provider base URL"
    )
    upstream_model: str = Field(default="deepseek-chat", description="Provider model name")
    upstream_api_key: str = Field(
        default_factory=lambda: os.getenv("DEEPSEEK_API_KEY", ""),
        description="Server-side default API key",
    )
    upstream_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    upstream_max_tokens: int = Field(default=8192, gt=0)
    upstream_top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    upstream_frequency_penalty: float = Field(default=0.1, ge=-2.0, le=2.0)
    upstream_connect_timeout: float = Field(default=10.0, gt=0)
    upstream_read_timeout: float = Field(default=120.0, gt=0)

    # Relay coalescing
    min_chunk_chars: int = Field(default=3, gt=0, description="Flush chunk at this many chars")
    flush_interval_ms: float = Field(default=30.0, ge=0, description="Flush chunk after this delay")

    # Validation
    max_prompt_length: int = Field(default=8192, gt=0, description="Max prompt length")

    # Analytics
    analytics_capacity: int = Field(default=10_000, gt=0, description="Event ring buffer size")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Use JSON log format")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
