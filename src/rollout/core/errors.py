"""
Structured error types for rollout-core.

Two families live here. Store errors (``StoreError`` and subclasses) are what a
resource store raises when a get or update fails. Rollout errors
(``RolloutError`` and subclasses) are what the rollout machinery raises to its
caller after a failure has been classified, logged, and wrapped with the
identity of the resource being rolled out.

Every error carries an explicit ``kind`` so callers query it structurally
(``err.kind is ErrorKind.CONFLICT``) instead of walking isinstance ladders.

Manifesto:
    - **Explicit kinds:** NotFound, Conflict, Status and Other are tagged, not guessed
    - **Identity context:** Every fatal error names the resource, namespace and ordinal
    - **Error chaining:** The original store failure is always kept as ``cause``
    - **Pacing hint:** A rollout error carries the ``skip_sleep`` hint computed so far

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │  StoreError (kind)              raised by ResourceStore      │
        │    NotFoundError    ConflictError    StatusError             │
        ├──────────────────────────────────────────────────────────────┤
        │  RolloutError (kind, context, cause, skip_sleep)             │
        │    ResourceNotFoundError     ResourceConflictError           │
        │    ResourceStatusError       VerificationTimeoutError        │
        │    HealthProbeError          ReadinessWaitError              │
        │    TransformError            CancelledError                  │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = ResourceConflictError("object has been modified")
    >>> err.kind
    <ErrorKind.CONFLICT: 'CONFLICT'>
    >>> err.retryable
    True
    >>> err.with_context(name="db", namespace="prod", ordinal=2).context.ordinal
    2

Tags:
    error-handling, exception-hierarchy, classification, rollout-core
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Classification of a failure seen during a rollout.

    The first four values are the store-level taxonomy produced by the error
    classifier. The rest tag failures raised by the rollout machinery itself.
    """

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    STATUS = "STATUS"
    OTHER = "OTHER"

    VERIFICATION_TIMEOUT = "VERIFICATION_TIMEOUT"
    HEALTH_PROBE = "HEALTH_PROBE"
    READINESS_WAIT = "READINESS_WAIT"
    TRANSFORM = "TRANSFORM"
    CANCELLED = "CANCELLED"


STORE_KINDS = frozenset(
    {ErrorKind.NOT_FOUND, ErrorKind.CONFLICT, ErrorKind.STATUS, ErrorKind.OTHER}
)


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreError(Exception):
    """Base class for failures raised by a resource store."""

    kind: ErrorKind = ErrorKind.OTHER

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(StoreError):
    """The requested resource does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(StoreError):
    """The update was rejected because the caller's copy is stale."""

    kind = ErrorKind.CONFLICT


class StatusError(StoreError):
    """A structured failure reported by the store.

    Attributes:
        code: Numeric status code (HTTP-like), if the store reports one
        reason: Short machine-readable reason, e.g. ``"Forbidden"``
    """

    kind = ErrorKind.STATUS

    def __init__(self, message: str, *, code: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.code = code
        self.reason = reason


# =============================================================================
# ROLLOUT ERRORS
# =============================================================================


@dataclass
class ErrorContext:
    """Identity of the resource a rollout error refers to.

    Attributes:
        name: Name of the ordered workload set
        namespace: Namespace of the ordered workload set
        ordinal: Replica ordinal being processed, if the failure is per-ordinal
        metadata: Additional key-value pairs
    """

    name: str | None = None
    namespace: str | None = None
    ordinal: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("name", "namespace", "ordinal"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RolloutError(Exception):
    """Base exception for every failure surfaced by a rollout.

    Attributes:
        message: Human-readable description
        kind: ErrorKind tag
        context: ErrorContext naming the resource (and ordinal)
        cause: Underlying exception, also set as ``__cause__``
        skip_sleep: The skip-sleep hint computed before the failure
    """

    default_kind: ErrorKind = ErrorKind.OTHER

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
        skip_sleep: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.context = context or ErrorContext()
        self.cause = cause
        self.skip_sleep = skip_sleep

        if cause is not None:
            self.__cause__ = cause

    @property
    def retryable(self) -> bool:
        """Whether re-running the same mutation may succeed."""
        return self.kind is ErrorKind.CONFLICT

    def with_context(self, **kwargs: Any) -> RolloutError:
        """
        Add context to this error (fluent API).

        Known fields (name, namespace, ordinal) are set directly; anything else
        lands in ``context.metadata``.
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def wrap(self, message: str, **context: Any) -> RolloutError:
        """Return a copy of this error with ``message`` prefixed.

        The copy keeps the kind, the cause chain and the skip-sleep hint, so
        outer layers can add their own description without losing the
        classification made further down.
        """
        wrapped = type(self).__new__(type(self))
        RolloutError.__init__(
            wrapped,
            f"{message}: {self.message}",
            kind=self.kind,
            context=ErrorContext(
                name=self.context.name,
                namespace=self.context.namespace,
                ordinal=self.context.ordinal,
                metadata=dict(self.context.metadata),
            ),
            cause=self,
            skip_sleep=self.skip_sleep,
        )
        return wrapped.with_context(**context)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "skip_sleep": self.skip_sleep,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, kind={self.kind.value})"


class ResourceNotFoundError(RolloutError):
    """The workload set (or a pod it is expected to have) does not exist."""

    default_kind = ErrorKind.NOT_FOUND


class ResourceConflictError(RolloutError):
    """An optimistic-concurrency conflict that outlived the retry budget."""

    default_kind = ErrorKind.CONFLICT


class ResourceStatusError(RolloutError):
    """A structured store failure; the store's message is embedded."""

    default_kind = ErrorKind.STATUS


class VerificationTimeoutError(RolloutError):
    """The verification predicate never succeeded within its time budget."""

    default_kind = ErrorKind.VERIFICATION_TIMEOUT


class HealthProbeError(RolloutError):
    """The cluster health probe failed at a checkpoint."""

    default_kind = ErrorKind.HEALTH_PROBE


class ReadinessWaitError(RolloutError):
    """Waiting for every replica to become ready failed."""

    default_kind = ErrorKind.READINESS_WAIT


class TransformError(RolloutError):
    """The injected workload set transform failed."""

    default_kind = ErrorKind.TRANSFORM


class CancelledError(RolloutError):
    """The rollout was cancelled or its deadline passed."""

    default_kind = ErrorKind.CANCELLED


_ERROR_TYPES: dict[ErrorKind, type[RolloutError]] = {
    ErrorKind.NOT_FOUND: ResourceNotFoundError,
    ErrorKind.CONFLICT: ResourceConflictError,
    ErrorKind.STATUS: ResourceStatusError,
    ErrorKind.OTHER: RolloutError,
    ErrorKind.VERIFICATION_TIMEOUT: VerificationTimeoutError,
    ErrorKind.HEALTH_PROBE: HealthProbeError,
    ErrorKind.READINESS_WAIT: ReadinessWaitError,
    ErrorKind.TRANSFORM: TransformError,
    ErrorKind.CANCELLED: CancelledError,
}


def error_type_for(kind: ErrorKind) -> type[RolloutError]:
    """Return the RolloutError subclass used for ``kind``."""
    return _ERROR_TYPES[kind]


__all__ = [
    "ErrorKind",
    "STORE_KINDS",
    # Store
    "StoreError",
    "NotFoundError",
    "ConflictError",
    "StatusError",
    # Rollout
    "ErrorContext",
    "RolloutError",
    "ResourceNotFoundError",
    "ResourceConflictError",
    "ResourceStatusError",
    "VerificationTimeoutError",
    "HealthProbeError",
    "ReadinessWaitError",
    "TransformError",
    "CancelledError",
    "error_type_for",
]
