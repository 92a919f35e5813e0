"""Classification of store failures into rollout errors.

Every store failure seen by the controller or the strategy goes through
``handle_store_error``: it is tagged with an ``ErrorKind``, logged once at
error level with the resource identity, and returned wrapped in the matching
``RolloutError`` subclass for the caller to raise.
"""

from __future__ import annotations

from typing import Any

from rollout.core.errors import (
    STORE_KINDS,
    ErrorContext,
    ErrorKind,
    RolloutError,
    StatusError,
    StoreError,
    error_type_for,
)


def classify(error: BaseException) -> ErrorKind:
    """Map a failure onto NOT_FOUND, CONFLICT, STATUS or OTHER."""
    if isinstance(error, StoreError):
        return error.kind
    if isinstance(error, RolloutError) and error.kind in STORE_KINDS:
        return error.kind
    return ErrorKind.OTHER


def handle_store_error(
    error: BaseException,
    logger: Any,
    name: str,
    namespace: str,
    *,
    ordinal: int | None = None,
) -> RolloutError:
    """Classify, log and wrap a store failure.

    Args:
        error: The failure raised by the store (or by code calling it)
        logger: structlog logger; receives exactly one error event
        name: Workload set name
        namespace: Workload set namespace
        ordinal: Ordinal being processed, when known

    Returns:
        A RolloutError of the classified kind, chained to ``error``
    """
    kind = classify(error)
    message = getattr(error, "message", None) or str(error)
    context = ErrorContext(name=name, namespace=namespace, ordinal=ordinal)

    if kind is ErrorKind.NOT_FOUND:
        logger.error("workload set is not found", name=name, namespace=namespace, message=message)
        text = f"workload set is not found: {name} ns: {namespace}"
    elif kind is ErrorKind.STATUS:
        logger.error(
            f"error getting workload set: {message}",
            name=name,
            namespace=namespace,
            message=message,
            code=getattr(error, "code", None),
            reason=getattr(error, "reason", None),
        )
        text = f"store rejected {name} ns: {namespace}: {message}"
        if isinstance(error, StatusError) and error.reason:
            context.metadata["reason"] = error.reason
    elif kind is ErrorKind.CONFLICT:
        logger.error("conflict updating workload set", name=name, namespace=namespace, message=message)
        text = f"conflict updating {name} ns: {namespace}: {message}"
    else:
        logger.error("error getting workload set", name=name, namespace=namespace, message=message)
        text = f"error accessing {name} ns: {namespace}: {message}"

    if ordinal is not None:
        text = f"{text} (ordinal {ordinal})"

    return error_type_for(kind)(text, kind=kind, context=context, cause=error)


__all__ = ["classify", "handle_store_error"]
