"""Clock and cancellation primitives shared by the pipeline stages."""

import threading
import time
from datetime import datetime, timezone

from distill.exceptions import RunCancelledError


class CancellationToken:
    """Run-wide cancellation signal observed at every suspension point."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str) -> None:
        if self._event.is_set():
            raise RunCancelledError(where)

    def wait(self, seconds: float) -> bool:
        """Blocks for up to `seconds`; returns True if cancelled meanwhile."""
        return self._event.wait(max(seconds, 0.0))


class Clock:
    """Time source for the polling loop, swappable in tests."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def sleep(self, seconds: float, cancellation: CancellationToken, where: str) -> None:
        """
        Suspends the run thread without spinning.

        Raises:
            RunCancelledError: If the token fires before the delay elapses.
        """
        if cancellation.wait(seconds):
            raise RunCancelledError(where)
