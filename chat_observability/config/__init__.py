from chat_observability.config.settings import (
    DEFAULT_HOST,
    LangfuseSettings,
    clamp_sample_rate,
    flush_interval_seconds,
    has_credentials,
)

__all__ = [
    "DEFAULT_HOST",
    "LangfuseSettings",
    "clamp_sample_rate",
    "flush_interval_seconds",
    "has_credentials",
]
