"""
Langfuse service for LLM observability and tracing.

A fail-open facade over the Langfuse SDK. The chat application creates one
trace per conversation turn and one generation per model call; everything
below that (batching, transport, retries) is the SDK's job.

Guarantees:
- Every tracing call is a no-op returning None while Langfuse is disabled
  or not yet initialized.
- Errors raised by the SDK are logged and swallowed, except for explicit
  flush() / shutdown() calls, which re-raise after logging.
- Initialization failures disable tracing instead of failing startup.
"""

import asyncio
import logging
import random
import threading
from collections.abc import Callable
from importlib import metadata
from typing import Any

from langfuse import Langfuse
from pydantic import ValidationError

from chat_observability.config.settings import LangfuseSettings, has_credentials
from chat_observability.services.protocols.langfuse import LangfuseClientProtocol
from chat_observability.utils.decorators import fail_open
from chat_observability.utils.shutdown import ShutdownFlushHandler

logger = logging.getLogger(__name__)

PACKAGE_NAME = "chat-observability"
SDK_INTEGRATION = "chat-observability"


def _package_version() -> str:
    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


class LangfuseService:
    """
    Process-wide Langfuse facade.

    Construct once at startup, call ``initialize()``, and pass the instance
    to the components that trace LLM calls. ``initialize()`` is the only
    method that changes the service's state.
    """

    log_prefix = "[LangfuseService]"

    def __init__(
        self,
        settings: LangfuseSettings | None = None,
        client_factory: Callable[..., LangfuseClientProtocol] | None = None,
    ):
        """
        Args:
            settings: Langfuse settings; read from the environment on
                ``initialize()`` when omitted
            client_factory: Callable building the SDK client
                (defaults to ``langfuse.Langfuse``)
        """
        self.settings = settings
        self._client_factory = client_factory
        self.logger = logger

        self.client: LangfuseClientProtocol | None = None
        self.enabled = False
        self.sample_rate = 1.0

        self._initialized = False
        self._init_lock = threading.Lock()
        self._shutdown_handler: ShutdownFlushHandler | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def _active(self) -> bool:
        return self.enabled and self.client is not None

    def initialize(self) -> "LangfuseService":
        """
        Initialize the Langfuse client from settings.

        Safe to call more than once; only the first call has any effect.
        """
        if self._initialized:
            return self

        with self._init_lock:
            if self._initialized:
                return self
            try:
                self._initialize()
            finally:
                self._initialized = True

        return self

    def _initialize(self) -> None:
        settings = self._load_settings()
        if settings is None:
            return
        self.settings = settings

        if not settings.enabled:
            self.logger.info(f"{self.log_prefix} Langfuse is disabled")
            return

        if not has_credentials(settings):
            self.logger.warning(
                f"{self.log_prefix} Missing LANGFUSE_PUBLIC_KEY or LANGFUSE_SECRET_KEY. "
                "Langfuse will be disabled."
            )
            return

        self.sample_rate = settings.sample_rate
        factory = self._client_factory or Langfuse

        try:
            self.client = factory(
                public_key=settings.public_key,
                secret_key=settings.secret_key.get_secret_value(),
                host=settings.host,
                release=settings.release or _package_version(),
                debug=settings.debug,
                flush_at=settings.flush_at,
                flush_interval=settings.flush_interval_secs,
                sdk_integration=SDK_INTEGRATION,
                # Whole turns are sampled in should_trace(); the SDK would
                # otherwise re-read LANGFUSE_SAMPLE_RATE and sample again
                sample_rate=1.0,
            )
        except Exception as e:
            self.logger.error(
                f"{self.log_prefix} Failed to initialize Langfuse: {e}", exc_info=True
            )
            self.client = None
            return

        self.enabled = True
        self.logger.info(
            f"{self.log_prefix} Langfuse initialized successfully "
            f"(host={settings.host}, sample_rate={self.sample_rate}, "
            f"flush_interval={settings.flush_interval}ms)",
            extra={"host": settings.host},
        )

        self._register_shutdown_flush()

    def _load_settings(self) -> LangfuseSettings | None:
        if self.settings is not None:
            return self.settings
        try:
            return LangfuseSettings()
        except ValidationError as e:
            self.logger.warning(
                f"{self.log_prefix} Invalid Langfuse configuration, "
                f"Langfuse will be disabled: {e}"
            )
            return None

    def _register_shutdown_flush(self) -> None:
        if self._shutdown_handler is not None:
            return
        if not self.settings.flush_at_shutdown or self.client is None:
            return

        self._shutdown_handler = ShutdownFlushHandler(
            self.client.flush,
            timeout=self.settings.shutdown_timeout,
            log_prefix=self.log_prefix,
        )
        self._shutdown_handler.install()

    def _remove_shutdown_flush(self) -> None:
        if self._shutdown_handler is not None:
            self._shutdown_handler.uninstall()

    def should_trace(self) -> bool:
        """Check if tracing should be performed based on sample rate."""
        if not self._active:
            return False

        if self.sample_rate >= 1.0:
            return True

        return random.random() < self.sample_rate

    @fail_open("creating trace")
    def trace(self, **options: Any) -> Any | None:
        """
        Create a new trace.

        Returns:
            Trace handle, or None if disabled or not sampled. Callers should
            skip spans and generations for a None trace.
        """
        if not self.should_trace():
            return None

        return self.client.trace(**options)

    @fail_open("creating span")
    def span(self, trace: Any | None, **options: Any) -> Any | None:
        """Create a span within a trace."""
        if not self._active or trace is None:
            return None

        return trace.span(**options)

    @fail_open("creating generation")
    def generation(self, trace: Any | None, **options: Any) -> Any | None:
        """Create a generation (LLM call) within a trace."""
        if not self._active or trace is None:
            return None

        return trace.generation(**options)

    @fail_open("logging event")
    def event(self, trace: Any | None, **options: Any) -> None:
        if not self._active or trace is None:
            return

        trace.event(**options)

    @fail_open("updating trace")
    def update_trace(self, trace: Any | None, **updates: Any) -> None:
        if not self._active or trace is None:
            return

        trace.update(**updates)

    @fail_open("creating score")
    def score(self, **options: Any) -> None:
        """Score a trace (for user feedback, ratings, etc.)."""
        if not self._active:
            return

        self.client.score(**options)

    async def flush(self, timeout: float | None = None) -> None:
        """
        Manually flush pending traces.

        Args:
            timeout: Optional limit in seconds for the flush

        Raises:
            Exception: The SDK's error (or TimeoutError), after logging it
        """
        if not self._active:
            return

        try:
            await self._run_blocking(self.client.flush, timeout)
        except Exception as e:
            self.logger.error(
                f"{self.log_prefix} Error flushing traces: {e}", exc_info=True
            )
            raise

    async def shutdown(self, timeout: float | None = None) -> None:
        """Flush and shut down the Langfuse client."""
        if not self._active:
            return

        try:
            await self._run_blocking(self.client.shutdown, timeout)
            self.logger.info(
                f"{self.log_prefix} Langfuse client shutdown successfully"
            )
        except Exception as e:
            self.logger.error(
                f"{self.log_prefix} Error shutting down Langfuse client: {e}",
                exc_info=True,
            )
            raise

    @staticmethod
    async def _run_blocking(func: Callable[[], Any], timeout: float | None) -> None:
        # SDK flush/shutdown block on its worker queue
        call = asyncio.to_thread(func)
        if timeout is None:
            await call
        else:
            await asyncio.wait_for(call, timeout)

    def get_client(self) -> LangfuseClientProtocol | None:
        """Get the raw Langfuse client (for advanced usage)."""
        return self.client if self.enabled else None

    def is_enabled(self) -> bool:
        return self.enabled

    def health_check(self) -> dict[str, Any]:
        """Check service health status."""
        if not self._initialized:
            return {"status": "not_initialized"}
        if not self._active:
            return {"status": "disabled"}
        return {
            "status": "healthy",
            "host": self.settings.host,
            "sample_rate": self.sample_rate,
            "shutdown_flush": bool(
                self._shutdown_handler and self._shutdown_handler.installed
            ),
        }


# Global instance
_langfuse_service: LangfuseService | None = None
_service_lock = threading.Lock()


def initialize_langfuse_service(
    settings: LangfuseSettings | None = None,
    client_factory: Callable[..., LangfuseClientProtocol] | None = None,
) -> LangfuseService:
    """
    Create and initialize the process-wide Langfuse service.

    Later calls return the existing instance unchanged.
    """
    global _langfuse_service

    with _service_lock:
        if _langfuse_service is None:
            _langfuse_service = LangfuseService(settings, client_factory)
        elif settings is not None and settings is not _langfuse_service.settings:
            logger.debug(
                f"{LangfuseService.log_prefix} Already initialized, ignoring new settings"
            )

    return _langfuse_service.initialize()


def get_langfuse_service() -> LangfuseService | None:
    """Get the process-wide Langfuse service, if one was initialized."""
    return _langfuse_service


def reset_langfuse_service() -> None:
    """Drop the process-wide service and restore signal handlers (tests)."""
    global _langfuse_service

    with _service_lock:
        if _langfuse_service is not None:
            _langfuse_service._remove_shutdown_flush()
        _langfuse_service = None
