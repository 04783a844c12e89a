"""Shared utilities: logging setup, error-handling decorators, shutdown hooks."""

from chat_observability.utils.decorators import fail_open
from chat_observability.utils.logging import JSONFormatter, configure_logging
from chat_observability.utils.shutdown import ShutdownFlushHandler, run_with_timeout

__all__ = [
    "fail_open",
    "JSONFormatter",
    "configure_logging",
    "ShutdownFlushHandler",
    "run_with_timeout",
]
