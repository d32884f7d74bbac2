"""Per-request cancellation and deadline."""

import threading
import time
from typing import Optional

from .exceptions import Cancelled, DeadlineExceeded


class RequestContext:
    """Cancellation signal and optional deadline for one top-level call.

    Every cloud operation takes a context as its first argument. Polling
    loops call ``check()`` before each probe and sleep through ``sleep()``
    so a cancel or an expired deadline stops them promptly.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self.deadline: Optional[float] = None
        if timeout is not None:
            self.deadline = time.monotonic() + timeout

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """Raise if the context was cancelled or its deadline has passed.

        Raises:
            Cancelled: cancel() was called
            DeadlineExceeded: deadline has passed
        """
        if self.cancelled:
            raise Cancelled()
        if self.expired():
            raise DeadlineExceeded()

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``, waking early on cancel or deadline."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._cancelled.wait(seconds)
        self.check()


def background() -> RequestContext:
    """Context that is never cancelled and has no deadline."""
    return RequestContext()
