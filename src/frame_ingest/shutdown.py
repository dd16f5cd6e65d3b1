"""
Shutdown Handling
=================

Cancellation token and signal wiring for graceful shutdown.

The token is the only state shared between the signal handler and the
control loop. It is advisory: the loop polls it at the top of each
iteration and inside backoff waits, an in-flight blocking read is never
interrupted.
"""

import logging
import signal
import threading
from typing import Any, Dict, Iterable, Optional


logger = logging.getLogger(__name__)


DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancellationToken:
    """
    One-shot shutdown flag with interruptible waits.

    Example:
        token = CancellationToken()
        if token.wait(3.0):
            return  # cancelled during the wait
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._signum: Optional[int] = None

    @property
    def cancelled(self) -> bool:
        """Whether shutdown has been requested."""
        return self._event.is_set()

    @property
    def signum(self) -> Optional[int]:
        """Signal number that triggered cancellation, if any."""
        return self._signum

    def cancel(self, signum: Optional[int] = None) -> None:
        """Request shutdown. Later calls keep the first signal number."""
        if self._signum is None:
            self._signum = signum
        self._event.set()

    def wait(self, seconds: float) -> bool:
        """
        Sleep for `seconds` unless cancelled first.

        Returns:
            True if the token was cancelled before or during the wait
        """
        if seconds <= 0:
            return self.cancelled
        return self._event.wait(timeout=seconds)


def install_signal_handlers(
    token: CancellationToken,
    signals: Iterable[int] = DEFAULT_SIGNALS,
) -> Dict[int, Any]:
    """
    Route termination signals to the token.

    Must be called from the main thread.

    Args:
        token: Token to cancel on signal delivery
        signals: Signal numbers to handle

    Returns:
        Previous handlers keyed by signal number, for restore_signal_handlers
    """
    def _handle(signum, frame):
        logger.info(f"Interrupt signal ({signum}) received. Shutting down...")
        token.cancel(signum)

    previous = {}
    for signum in signals:
        previous[signum] = signal.signal(signum, _handle)
    return previous


def restore_signal_handlers(previous: Dict[int, Any]) -> None:
    """Reinstall handlers returned by install_signal_handlers."""
    for signum, handler in previous.items():
        signal.signal(signum, handler)
