"""Cooperative cancellation driven by SIGINT/SIGTERM."""

import logging
import signal
import threading

logger = logging.getLogger(__name__)


class CancellationToken:
    """Shutdown flag polled between units of work.

    Setting the token never interrupts a computation in flight; callers
    check it before scheduling the next file or grid-point batch.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason = None

    def cancel(self, reason="cancelled"):
        if not self._event.is_set():
            self.reason = reason
            logger.warning(
                f"Shutdown requested ({reason}); "
                "finishing work in progress."
            )
        self._event.set()

    def is_set(self):
        return self._event.is_set()

    def __bool__(self):
        return self.is_set()


def install_signal_handlers(token, signals=(signal.SIGINT, signal.SIGTERM)):
    """
    Route the given signals to `token.cancel`.

    Returns the previous handlers so they can be restored with
    `restore_signal_handlers`. Signal handlers can only be installed
    from the main thread; elsewhere nothing is installed.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not in main thread; signal handlers not installed.")
        return {}

    def _handler(signum, frame):
        token.cancel(reason=signal.Signals(signum).name)

    previous = {}
    for signum in signals:
        previous[signum] = signal.getsignal(signum)
        signal.signal(signum, _handler)
    return previous


def restore_signal_handlers(previous):
    for signum, handler in previous.items():
        signal.signal(signum, handler)
