"""Rollout Core -- errors, logging, settings and capability protocols.

Architecture::

    errors.py      ErrorKind, store errors, RolloutError hierarchy
    protocols.py   Single-method capability protocols (store, verifier, ...)
    logging.py     structlog configuration + get_logger()
    settings.py    RolloutSettings (pydantic-settings) + get_settings()
    hashing.py     Deterministic template revision hashes
"""

from rollout.core.errors import (
    CancelledError,
    ConflictError,
    ErrorContext,
    ErrorKind,
    HealthProbeError,
    NotFoundError,
    ReadinessWaitError,
    ResourceConflictError,
    ResourceNotFoundError,
    ResourceStatusError,
    RolloutError,
    StatusError,
    StoreError,
    TransformError,
    VerificationTimeoutError,
)
from rollout.core.logging import configure_logging, get_logger

__all__ = [
    "CancelledError",
    "ConflictError",
    "ErrorContext",
    "ErrorKind",
    "HealthProbeError",
    "NotFoundError",
    "ReadinessWaitError",
    "ResourceConflictError",
    "ResourceNotFoundError",
    "ResourceStatusError",
    "RolloutError",
    "StatusError",
    "StoreError",
    "TransformError",
    "VerificationTimeoutError",
    "configure_logging",
    "get_logger",
]
