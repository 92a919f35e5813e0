"""Rollout Execution -- cancellation, backoff polling and conflict retry."""

from rollout.execution.backoff import ExponentialBackoff, PollState, poll_until
from rollout.execution.cancel import CancelToken
from rollout.execution.conflict import ConflictRetryPolicy, update_with_conflict_retry

__all__ = [
    "CancelToken",
    "ConflictRetryPolicy",
    "ExponentialBackoff",
    "PollState",
    "poll_until",
    "update_with_conflict_retry",
]
