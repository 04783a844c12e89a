"""
Langfuse Service Protocols

Defines the interface of the Langfuse SDK client the facade delegates to,
and the interface the facade itself offers to the chat application.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LangfuseClientProtocol(Protocol):
    """Subset of the Langfuse SDK client used by the facade."""

    def trace(self, **kwargs: Any) -> Any:
        """Create a trace and return its stateful handle."""
        ...

    def score(self, **kwargs: Any) -> Any:
        """Record a score."""
        ...

    def flush(self) -> None:
        """Block until queued events have been sent."""
        ...

    def shutdown(self) -> None:
        """Flush and stop the SDK's background workers."""
        ...


@runtime_checkable
class LangfuseServiceProtocol(Protocol):
    """Protocol for Langfuse service implementations."""

    @property
    def enabled(self) -> bool: ...

    def should_trace(self) -> bool:
        """Decide whether a new trace should be recorded."""
        ...

    def trace(self, **options: Any) -> Any | None:
        """
        Start a trace for one conversation turn.

        Returns:
            Trace handle, or None when the turn is not being recorded

        """
        ...

    def span(self, trace: Any | None, **options: Any) -> Any | None:
        """Create a span under ``trace``."""
        ...

    def generation(self, trace: Any | None, **options: Any) -> Any | None:
        """Create a generation (one model call) under ``trace``."""
        ...

    def event(self, trace: Any | None, **options: Any) -> None:
        """Log an event under ``trace``."""
        ...

    def update_trace(self, trace: Any | None, **updates: Any) -> None:
        """Apply metadata updates to ``trace``."""
        ...

    def score(self, **options: Any) -> None:
        """Record a feedback or quality score."""
        ...

    async def flush(self, timeout: float | None = None) -> None:
        """Flush pending traces to Langfuse."""
        ...

    async def shutdown(self, timeout: float | None = None) -> None:
        """Flush and shut down the Langfuse client."""
        ...

    def health_check(self) -> dict[str, Any]:
        """Check service health status."""
        ...
