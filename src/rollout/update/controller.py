"""Entry point for rolling an update out to one workload set.

The controller fetches the workload set, runs the injected transform on an
in-memory copy to get the desired workload set, and hands that to the
injected strategy. It never writes to the store itself.

Key Concepts:
    UpdateFunctionSuite: Pairs "what changes" (``update_func``) with "how it
        is rolled out" (``strategy``). Callers that do not know which
        strategy to use should pick ``PartitionedRollingUpdateStrategy``.
    update_cluster_region_workload_set(): Function form; returns the
        skip-sleep hint or raises ``RolloutError``.
    RolloutController: Same operation bound to its collaborators, with
        ``execute()`` returning a ``RolloutOutcome`` for reconcile loops.

Related Modules:
    - :mod:`rollout.update.strategy`: the partitioned strategy
    - :mod:`rollout.update.classifier`: store error classification
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rollout.core.errors import CancelledError, ErrorContext, RolloutError, TransformError
from rollout.core.logging import LogContext, get_logger
from rollout.core.protocols import (
    HealthChecker,
    ReadinessWaiter,
    ResourceStore,
    Transform,
    UpdateStrategy,
)
from rollout.execution.cancel import CancelToken
from rollout.update.classifier import handle_store_error
from rollout.update.models import RolloutContext, RolloutOutcome, TimingConfig


@dataclass(frozen=True)
class UpdateFunctionSuite:
    """The transform and strategy used to update one workload set.

    ``update_func`` receives the fetched workload set and returns the desired
    one; it must not touch the store. ``strategy`` persists the desired
    workload set replica by replica.
    """

    update_func: Transform
    strategy: UpdateStrategy


def update_cluster_region_workload_set(
    store: ResourceStore,
    name: str,
    namespace: str,
    suite: UpdateFunctionSuite,
    readiness_waiter: ReadinessWaiter,
    timing: TimingConfig,
    health_checker: HealthChecker,
    logger: Any,
    cancel: CancelToken | None = None,
) -> bool:
    """Roll ``suite.update_func``'s change out to workload set ``name``.

    Returns:
        The skip-sleep hint reported by the strategy

    Raises:
        ResourceNotFoundError: The workload set does not exist; nothing ran
        RolloutError: Any other store failure, classified by kind
        TransformError: ``suite.update_func`` failed; nothing was written
        RolloutError: The strategy failed; ``skip_sleep`` on the error holds
            the strategy's hint
    """
    logger = logger.bind(namespace=namespace)
    cancel = cancel or CancelToken.never()
    cancel.check(f"rollout of {name}")

    try:
        workload_set = store.get(name, namespace)
    except CancelledError:
        raise
    except Exception as exc:
        raise handle_store_error(exc, logger, name, namespace) from exc

    # The transform works on a private copy; the strategy decides when and
    # how the result reaches the store.
    try:
        desired = suite.update_func(workload_set.copy())
    except Exception as exc:
        logger.error("error applying update func", name=name, message=str(exc))
        raise TransformError(
            f"error applying update func to {name} {namespace}: {exc}",
            context=ErrorContext(name=name, namespace=namespace),
            cause=exc,
        ) from exc

    context = RolloutContext(
        store=store,
        workload_set=desired,
        name=name,
        namespace=namespace,
        cancel=cancel,
    )

    try:
        return suite.strategy(context, timing, readiness_waiter, health_checker, logger)
    except RolloutError as exc:
        logger.error(
            "error applying update strategy",
            name=name,
            kind=exc.kind.value,
            skip_sleep=exc.skip_sleep,
            message=exc.message,
        )
        raise exc.wrap(
            f"error applying update strategy to {name} {namespace}",
            name=name,
            namespace=namespace,
        ) from exc
    except Exception as exc:
        logger.error("error applying update strategy", name=name, message=str(exc))
        raise RolloutError(
            f"error applying update strategy to {name} {namespace}: {exc}",
            context=ErrorContext(name=name, namespace=namespace),
            cause=exc,
        ) from exc


class RolloutController:
    """A rollout of one workload set, bound to its collaborators.

    Parameters
    ----------
    store
        Resource store holding the workload set.
    name, namespace
        Identity of the workload set.
    suite
        Transform and strategy to apply.
    readiness_waiter, health_checker
        Cluster readiness and health collaborators.
    timing
        Per-pod timeout and polling cap.
    logger
        structlog logger; defaults to this module's logger.
    """

    def __init__(
        self,
        store: ResourceStore,
        name: str,
        namespace: str,
        suite: UpdateFunctionSuite,
        readiness_waiter: ReadinessWaiter,
        health_checker: HealthChecker,
        timing: TimingConfig | None = None,
        logger: Any = None,
    ) -> None:
        self.store = store
        self.name = name
        self.namespace = namespace
        self.suite = suite
        self.readiness_waiter = readiness_waiter
        self.health_checker = health_checker
        self.timing = timing or TimingConfig()
        self.logger = logger if logger is not None else get_logger(__name__)

    def run(self, cancel: CancelToken | None = None) -> bool:
        """Run the rollout; returns the skip-sleep hint or raises RolloutError."""
        with LogContext(rollout=self.name):
            return update_cluster_region_workload_set(
                self.store,
                self.name,
                self.namespace,
                self.suite,
                self.readiness_waiter,
                self.timing,
                self.health_checker,
                self.logger,
                cancel,
            )

    def execute(self, cancel: CancelToken | None = None) -> RolloutOutcome:
        """Run the rollout and report ``(skip_sleep, error)`` instead of raising."""
        try:
            return RolloutOutcome(skip_sleep=self.run(cancel))
        except RolloutError as exc:
            return RolloutOutcome(skip_sleep=exc.skip_sleep, error=exc)


__all__ = [
    "UpdateFunctionSuite",
    "update_cluster_region_workload_set",
    "RolloutController",
]
