"""Cancellation and deadline tracking for blocking rollout steps.

A rollout blocks in many places: store calls, the readiness wait, the
verification backoff, health probes. A ``CancelToken`` is passed through all
of them so a caller can stop a rollout promptly, either by calling
``cancel()`` from another thread or by giving the token a deadline.

Waiting is done on a ``threading.Event`` so a sleeping backoff loop wakes up
as soon as the token is cancelled instead of finishing its interval.

Example:
    >>> token = CancelToken(timeout=30.0)
    >>> token.wait(0.5)          # sleeps unless cancelled
    True
    >>> token.cancel()
    >>> token.cancelled
    True
    >>> token.check("update")    # raises CancelledError
    Traceback (most recent call last):
    ...
    rollout.core.errors.CancelledError: update cancelled
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from rollout.core.errors import CancelledError


@dataclass
class CancelToken:
    """Cooperative cancellation signal with an optional deadline.

    Attributes:
        timeout: Seconds from creation until the token expires (None = never)
        start_time: Monotonic timestamp of creation
    """

    timeout: float | None = None
    start_time: float = field(default_factory=time.monotonic)
    _event: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _reason: str = field(default="", init=False, repr=False)

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout < 0:
            raise ValueError(f"Timeout must be non-negative, got {self.timeout}")

    @classmethod
    def never(cls) -> CancelToken:
        """A token that is only cancelled explicitly."""
        return cls()

    @property
    def deadline(self) -> float | None:
        """Absolute deadline on the monotonic clock, if any."""
        if self.timeout is None:
            return None
        return self.start_time + self.timeout

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def remaining(self) -> float | None:
        """Seconds left before the deadline; None when there is no deadline."""
        deadline = self.deadline
        if deadline is None:
            return None
        return deadline - time.monotonic()

    def is_expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    @property
    def cancelled(self) -> bool:
        """True once ``cancel()`` was called or the deadline has passed."""
        return self._event.is_set() or self.is_expired()

    @property
    def reason(self) -> str:
        if self._event.is_set():
            return self._reason or "cancelled"
        if self.is_expired():
            return f"deadline of {self.timeout}s exceeded"
        return ""

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel the token, waking up every ``wait()`` in progress."""
        self._reason = reason
        self._event.set()

    def check(self, operation: str = "operation") -> None:
        """Raise CancelledError if the token is cancelled or expired."""
        if self.cancelled:
            raise CancelledError(f"{operation} {self.reason}").with_context(
                operation=operation, elapsed=round(self.elapsed, 3)
            )

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, bounded by the deadline.

        Returns:
            True if the full interval elapsed, False if the token was
            cancelled or expired first.
        """
        if seconds < 0:
            raise ValueError(f"Wait must be non-negative, got {seconds}")
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(max(remaining, 0.0))
            return False
        return not self._event.wait(seconds) and not self.is_expired()


__all__ = ["CancelToken"]
