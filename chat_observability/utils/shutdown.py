"""Flush pending observability data when the process is asked to stop.

SIGINT/SIGTERM handlers run a blocking flush in a worker thread with a hard
deadline, then hand the signal on to whatever handler was installed before,
so the application's own shutdown behaviour is preserved.
"""

import logging
import signal
import threading
from collections.abc import Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def run_with_timeout(func: Callable[[], Any], timeout: float) -> None:
    """Run ``func`` in a daemon thread and wait at most ``timeout`` seconds.

    A worker that is still running when the deadline passes is abandoned;
    being a daemon thread it will not keep the interpreter alive.

    Raises:
        TimeoutError: If ``func`` did not finish in time
        Exception: Whatever ``func`` raised
    """
    errors: list[BaseException] = []

    def target():
        try:
            func()
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=target, name="shutdown-flush", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        raise TimeoutError(f"flush did not finish within {timeout}s")
    if errors:
        raise errors[0]


class ShutdownFlushHandler:
    """Signal handler that flushes traces before passing the signal on."""

    def __init__(
        self,
        flush: Callable[[], Any],
        timeout: float,
        log_prefix: str = "[LangfuseService]",
    ):
        self._flush = flush
        self.timeout = timeout
        self.log_prefix = log_prefix
        self._previous: dict[int, Any] = {}
        self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS) -> bool:
        """Register this handler for ``signals``.

        Returns:
            True if the handlers are in place (now or from an earlier call)
        """
        if self._installed:
            return True

        try:
            for signum in signals:
                self._previous[signum] = signal.getsignal(signum)
                signal.signal(signum, self)
        except ValueError as e:
            # signal.signal only works from the main thread
            logger.warning(
                f"{self.log_prefix} Could not register shutdown flush handlers: {e}"
            )
            self._previous.clear()
            return False

        self._installed = True
        return True

    def uninstall(self) -> None:
        """Put back the handlers that were active before ``install``."""
        if not self._installed:
            return
        self._restore()
        self._installed = False

    def _restore(self) -> None:
        for signum, previous in self._previous.items():
            if previous is not None:
                signal.signal(signum, previous)
        self._previous.clear()

    def __call__(self, signum, frame):
        name = signal.Signals(signum).name
        logger.info(
            f"{self.log_prefix} Received {name}, flushing Langfuse traces...",
            extra={"signal": name},
        )
        try:
            run_with_timeout(self._flush, self.timeout)
            logger.info(f"{self.log_prefix} Langfuse traces flushed successfully")
        except TimeoutError:
            logger.warning(
                f"{self.log_prefix} Flushing Langfuse traces timed out after "
                f"{self.timeout}s, continuing shutdown"
            )
        except Exception as e:
            logger.error(
                f"{self.log_prefix} Error flushing Langfuse traces: {e}",
                exc_info=True,
            )

        self._chain(signum, frame)

    def _chain(self, signum, frame) -> None:
        if signum not in self._previous:
            return
        previous = self._previous[signum]
        if callable(previous):
            previous(signum, frame)
        elif previous is None or previous == signal.SIG_DFL:
            # None: installed outside Python, fall back to the default action
            signal.signal(signum, signal.SIG_DFL)
            signal.raise_signal(signum)
