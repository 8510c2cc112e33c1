"""Cancellation and timeout token passed to every provider call."""
import threading
import time


class Cancelled(Exception):
    """Raised when work is abandoned because its token was cancelled."""
    pass


class CancellationToken:
    """A cancel flag shared by all in-flight matches of one batch.

    Optionally carries a deadline; once it has passed the token reports
    itself as cancelled, so a single slow call cannot stall a batch.

    Usage::

        token = CancellationToken(timeout=30)
        provider.search(MediaKind.MOVIE, "Arrival", token)
        token.cancel()
    """

    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise Cancelled("Operation cancelled")

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*; returns True if cancelled meanwhile."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(seconds)
        return self.cancelled
