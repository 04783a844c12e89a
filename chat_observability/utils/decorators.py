"""
Error-handling decorators for observability calls.

Instrumentation must never break the code it observes, so every call into
the Langfuse SDK goes through ``fail_open``: the error is logged and the
caller gets a neutral default back instead of an exception.
"""

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def fail_open(action: str, default_return: Any = None):
    """
    Decorator that turns delegate errors into a logged no-op.

    Args:
        action: Human-readable description used in the log line
            (e.g. "creating trace")
        default_return: Value returned when the wrapped call raises

    The instance's ``logger`` and ``log_prefix`` attributes are used when
    present so log lines keep the service's own prefix.

    Example:
        @fail_open("creating span")
        def span(self, trace, **options):
            return trace.span(**options)

    """

    def decorator(func: Callable[..., T]) -> Callable[..., T | Any]:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as e:
                service_logger = getattr(self, "logger", logger)
                prefix = getattr(self, "log_prefix", f"[{type(self).__name__}]")
                service_logger.error(
                    f"{prefix} Error {action}: {e}",
                    exc_info=True,
                    extra={
                        "function": func.__qualname__,
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
                return default_return

        return wrapper

    return decorator
