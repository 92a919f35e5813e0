"""Bounded retry around optimistic-concurrency conflicts.

A store rejects an update with ``ConflictError`` when the caller's copy of
the resource is older than the stored one. The fix is always the same:
re-read the latest version, reapply the change to it, and try again.
``update_with_conflict_retry`` does exactly that, for at most
``policy.max_attempts`` update calls.

Only conflicts are retried. Any other failure (including a failing re-read)
propagates at once without using up the attempt budget.

Example:
    >>> def set_partition(ws):
    ...     ws.set_partition(2)
    >>>
    >>> stored = update_with_conflict_retry(
    ...     store, desired, set_partition, ConflictRetryPolicy(max_attempts=6)
    ... )
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rollout.core.errors import ConflictError
from rollout.execution.cancel import CancelToken

if TYPE_CHECKING:
    from rollout.core.protocols import ResourceStore
    from rollout.update.models import OrderedWorkloadSet


@dataclass(frozen=True)
class ConflictRetryPolicy:
    """How many times, and how far apart, to retry a conflicting update.

    The defaults allow one initial update plus five retries ten milliseconds
    apart with 10% jitter.

    Attributes:
        max_attempts: Total update calls, including the first
        delay: Pause before the first retry in seconds
        factor: Growth factor of the pause per retry
        jitter: Extra random pause as a fraction of the pause
    """

    max_attempts: int = 6
    delay: float = 0.01
    factor: float = 1.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError("delay must be non-negative")
        if self.factor < 1.0:
            raise ValueError("factor must be >= 1.0")

    def next_delay(self, retry: int) -> float:
        """Pause before retry number ``retry`` (zero-based)."""
        delay = self.delay * (self.factor ** retry)
        if self.jitter:
            delay += random.uniform(0, delay * self.jitter)
        return delay


def update_with_conflict_retry(
    store: ResourceStore,
    candidate: OrderedWorkloadSet,
    reapply: Callable[[OrderedWorkloadSet], None],
    policy: ConflictRetryPolicy | None = None,
    cancel: CancelToken | None = None,
    *,
    logger: Any = None,
) -> OrderedWorkloadSet:
    """Persist ``candidate``, re-reading and reapplying on conflict.

    Args:
        store: Store to update
        candidate: The copy to persist first; ``reapply`` has already been
            applied to it by the caller
        reapply: Applies the intended change to a freshly read copy in place
        policy: Attempt budget and pause schedule
        cancel: Checked before every attempt and used for the pause
        logger: Optional structlog logger for retry events

    Returns:
        The stored workload set returned by the successful update

    Raises:
        ConflictError: The last conflict, once the budget is exhausted
        StoreError: Any non-conflict failure of ``update`` or the re-read
    """
    policy = policy or ConflictRetryPolicy()
    cancel = cancel or CancelToken.never()
    current = candidate

    for attempt in range(1, policy.max_attempts + 1):
        cancel.check("update")
        try:
            return store.update(current)
        except ConflictError:
            if attempt >= policy.max_attempts:
                raise
            delay = policy.next_delay(attempt - 1)
            if logger is not None:
                logger.debug(
                    "update conflict, retrying",
                    name=candidate.name,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    delay=round(delay, 4),
                )
            if not cancel.wait(delay):
                cancel.check("update")

        current = store.get(candidate.name, candidate.namespace)
        reapply(current)

    raise AssertionError("unreachable")  # pragma: no cover


__all__ = ["ConflictRetryPolicy", "update_with_conflict_retry"]
