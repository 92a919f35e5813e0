"""Exponential backoff polling for convergence checks.

``poll_until`` calls a predicate until it stops raising, sleeping an
exponentially growing, jittered interval between attempts. It gives up once
the next sleep would carry it past ``max_elapsed_time`` and raises
``VerificationTimeoutError`` chained to the predicate's last failure.

The default parameters (0.5s initial interval, x1.5 growth, ±50% jitter,
60s cap, 15 minute budget) are the conventional defaults for polling a
cluster that is restarting pods.

Example:
    >>> from rollout.execution.backoff import ExponentialBackoff, poll_until
    >>>
    >>> backoff = ExponentialBackoff(max_elapsed_time=120.0, max_interval=10.0)
    >>> for attempt in range(4):
    ...     print(f"Attempt {attempt}: wait {backoff.next_delay(attempt):.2f}s")
    >>>
    >>> poll_until(lambda: check_pod(2), backoff, operation="verify pod 2")
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from rollout.core.errors import CancelledError, VerificationTimeoutError
from rollout.execution.cancel import CancelToken


@dataclass
class ExponentialBackoff:
    """Exponential backoff with randomization and an elapsed-time budget.

    Delay = min(initial_interval * (multiplier ** attempt), max_interval) ± jitter,
    where the jitter is ``randomization_factor`` times the delay and the
    jittered value is capped at ``max_interval`` again.

    Attributes:
        initial_interval: First delay in seconds
        multiplier: Growth factor applied per attempt
        randomization_factor: Jitter as a fraction of the delay (0 disables)
        max_interval: Cap on any single delay
        max_elapsed_time: Total polling budget in seconds (None = unbounded)
    """

    initial_interval: float = 0.5
    multiplier: float = 1.5
    randomization_factor: float = 0.5
    max_interval: float = 60.0
    max_elapsed_time: float | None = 900.0

    def __post_init__(self) -> None:
        if self.initial_interval < 0:
            raise ValueError("initial_interval must be non-negative")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not 0.0 <= self.randomization_factor <= 1.0:
            raise ValueError("randomization_factor must be within [0, 1]")
        if self.max_interval <= 0:
            raise ValueError("max_interval must be positive")

    @classmethod
    def for_timing(cls, pod_update_timeout: float, pod_max_polling_interval: float) -> ExponentialBackoff:
        """Backoff bounded by a rollout's per-pod timeout and polling cap."""
        return cls(
            max_elapsed_time=pod_update_timeout,
            max_interval=pod_max_polling_interval,
        )

    def next_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (zero-based)."""
        try:
            delay = self.initial_interval * (self.multiplier ** attempt)
        except OverflowError:
            delay = self.max_interval
        delay = min(delay, self.max_interval)

        if self.randomization_factor:
            jitter_amount = delay * self.randomization_factor
            delay += random.uniform(-jitter_amount, jitter_amount)

        return min(max(0.0, delay), self.max_interval)


@dataclass
class PollState:
    """Bookkeeping for one ``poll_until`` run."""

    operation: str
    attempts: int = 0
    last_error: Exception | None = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.started_at


def poll_until(
    predicate: Callable[[], Any],
    backoff: ExponentialBackoff,
    cancel: CancelToken | None = None,
    *,
    operation: str = "verification",
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> PollState:
    """Call ``predicate`` until it returns without raising.

    Args:
        predicate: Zero-argument callable; raising means "not yet"
        backoff: Delay schedule and elapsed-time budget
        cancel: Token checked before every attempt and used for sleeping
        operation: Name used in error messages
        on_retry: Called with (attempt, error, delay) before each sleep

    Returns:
        The PollState of the successful run

    Raises:
        VerificationTimeoutError: The budget ran out; ``cause`` is the last failure
        CancelledError: The token was cancelled, or the predicate raised it
    """
    cancel = cancel or CancelToken.never()
    state = PollState(operation=operation)

    while True:
        cancel.check(operation)
        state.attempts += 1
        try:
            predicate()
            return state
        except CancelledError:
            raise
        except Exception as exc:
            state.last_error = exc

        delay = backoff.next_delay(state.attempts - 1)
        budget = backoff.max_elapsed_time
        if budget is not None and state.elapsed_seconds + delay > budget:
            raise VerificationTimeoutError(
                f"{operation} did not succeed within {budget}s "
                f"after {state.attempts} attempts: {state.last_error}",
                cause=state.last_error,
            ).with_context(attempts=state.attempts)

        if on_retry is not None:
            on_retry(state.attempts, state.last_error, delay)

        if not cancel.wait(delay):
            cancel.check(operation)


__all__ = ["ExponentialBackoff", "PollState", "poll_until"]
