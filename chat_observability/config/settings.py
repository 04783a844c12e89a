"""Langfuse configuration for the chat observability layer.

Settings are read once from the process environment (``LANGFUSE_*``) and are
immutable afterwards. Normalization rules live in plain functions so they
can be tested without touching the environment.
"""

import math

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings

DEFAULT_HOST = "https://cloud.langfuse.com"


def clamp_sample_rate(value: float) -> float:
    """Clamp a sample rate into [0, 1].

    Raises:
        ValueError: If the value is NaN
    """
    if math.isnan(value):
        raise ValueError("sample rate must be a number")
    return max(0.0, min(1.0, value))


def flush_interval_seconds(milliseconds: int) -> float:
    """Convert a flush interval in milliseconds to the SDK's seconds."""
    return milliseconds / 1000


def has_credentials(settings: "LangfuseSettings") -> bool:
    """Check that both halves of the Langfuse key pair are present."""
    return bool(settings.public_key) and bool(settings.secret_key.get_secret_value())


class LangfuseSettings(BaseSettings):
    """Langfuse observability settings."""

    enabled: bool = Field(default=False, description="Enable Langfuse tracing")
    public_key: str = Field(default="", description="Langfuse public key")
    secret_key: SecretStr = Field(
        default=SecretStr(""), description="Langfuse secret key"
    )
    host: str = Field(default=DEFAULT_HOST, description="Langfuse host URL")
    sample_rate: float = Field(
        default=1.0, description="Probability that a conversation turn is traced"
    )
    flush_at: int = Field(
        default=1, ge=1, description="Number of queued events that triggers a flush"
    )
    flush_interval: int = Field(
        default=1000, ge=0, description="Background flush interval in milliseconds"
    )
    debug: bool = Field(default=False, description="Enable Langfuse debug logging")
    flush_at_shutdown: bool = Field(
        default=True, description="Flush pending traces on SIGINT/SIGTERM"
    )
    release: str | None = Field(
        default=None, description="Release tag attached to traces"
    )
    shutdown_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for the shutdown flush before giving up",
    )

    model_config = {"env_prefix": "LANGFUSE_", "frozen": True, "extra": "ignore"}

    @field_validator("sample_rate")
    @classmethod
    def _clamp_sample_rate(cls, value: float) -> float:
        return clamp_sample_rate(value)

    @property
    def flush_interval_secs(self) -> float:
        return flush_interval_seconds(self.flush_interval)
