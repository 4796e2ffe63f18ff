"""Client configuration, read from keyword arguments or ``SKETRICGEN_*`` variables."""

from __future__ import annotations

from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://chat-v2.sketricgen.ai"

# The upload endpoints live on a separate gateway and are never derived from base_url.
DEFAULT_UPLOAD_INIT_URL = (
    "https://v9xof9ohlg.execute-api.us-east-1.amazonaws.com/dev/publicAssetsUploadInit"
)
DEFAULT_UPLOAD_COMPLETE_URL = (
    "https://v9xof9ohlg.execute-api.us-east-1.amazonaws.com/dev/publicAssetsUploadComplete"
)


class ClientConfig(BaseSettings):
    """Immutable configuration shared by every call made through one client."""

    model_config = SettingsConfigDict(
        env_prefix="SKETRICGEN_",
        extra="ignore",
        frozen=True,
    )

    api_key: SecretStr = Field(
        description="API key sent as API-KEY / X-API-KEY.",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL of the workflow API.",
    )
    upload_init_url: str = Field(
        default=DEFAULT_UPLOAD_INIT_URL,
        description="Endpoint that issues presigned upload grants.",
    )
    upload_complete_url: str = Field(
        default=DEFAULT_UPLOAD_COMPLETE_URL,
        description="Endpoint that confirms a finished upload.",
    )
    timeout: float | None = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for workflow requests. None disables it.",
    )
    upload_timeout: float | None = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for each upload request. None disables it.",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Connection attempts retried by the HTTP transport.",
    )

    @field_validator("api_key")
    @classmethod
    def require_api_key(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("api_key must be non-empty")
        return value

    @field_validator("base_url", "upload_init_url", "upload_complete_url", mode="before")
    @classmethod
    def normalize_url(cls, value: Any) -> Any:
        """Trim whitespace and trailing slashes."""
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value
