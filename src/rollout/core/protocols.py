"""
Capability protocols for rollout-core.

Each collaborator of a rollout is a single-method protocol injected at
construction time. Plain functions satisfy the ``__call__`` protocols, so
tests and callers can pass a ``def`` or a ``lambda`` where a class would be
overkill.

Architecture:
    ::

        protocols.py
        ├── ResourceStore    : get / update with conflict detection
        ├── Transform        : (workload set) -> desired workload set, pure
        ├── Verifier         : (context, ordinal, logger) -> None, raises if not converged
        ├── HealthChecker    : probe(cancel, logger, label, ordinal) -> None
        ├── ReadinessWaiter  : (cancel, logger) -> None, blocks until all ready
        └── UpdateStrategy   : (context, timing, waiter, checker, logger) -> skip_sleep

    Consumers:
        update/controller.py, update/strategy.py, update/readiness.py

Guardrails:
    ❌ DON'T: Signal failure from a Verifier by returning False
    ✅ DO: Raise; the exception becomes the "last failure" of a timeout

    ❌ DON'T: Mutate the store from a Transform
    ✅ DO: Return a modified copy and let the strategy persist it

Tags:
    protocol, dependency-injection, rollout-core, contracts
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rollout.execution.cancel import CancelToken
    from rollout.update.models import OrderedWorkloadSet, RolloutContext, TimingConfig


@runtime_checkable
class ResourceStore(Protocol):
    """
    Access to the orchestrated resource in an external store.

    ``get`` raises ``NotFoundError`` when the resource is absent. ``update``
    raises ``ConflictError`` when the caller's ``resource_version`` is stale
    and ``StatusError`` for any other structured rejection. Both return a
    fresh copy owned by the caller.
    """

    def get(self, name: str, namespace: str) -> OrderedWorkloadSet:
        """Fetch the latest version of a workload set."""
        ...

    def update(self, workload_set: OrderedWorkloadSet) -> OrderedWorkloadSet:
        """Persist a workload set; returns the stored version."""
        ...


class Transform(Protocol):
    """Compute the desired workload set from the current one. Pure."""

    def __call__(self, workload_set: OrderedWorkloadSet) -> OrderedWorkloadSet: ...


class Verifier(Protocol):
    """Check whether the replica at ``ordinal`` has converged.

    Returns None when converged and raises otherwise.
    """

    def __call__(self, context: RolloutContext, ordinal: int, logger: Any) -> None: ...


@runtime_checkable
class HealthChecker(Protocol):
    """Checks overall cluster health at a rollout checkpoint."""

    def probe(self, cancel: CancelToken, logger: Any, label: str, ordinal: int) -> None:
        """Raise if the cluster is unhealthy at this checkpoint."""
        ...


class ReadinessWaiter(Protocol):
    """Blocks until every replica is ready, raising on failure or timeout."""

    def __call__(self, cancel: CancelToken, logger: Any) -> None: ...


class UpdateStrategy(Protocol):
    """Rolls a transformed workload set out across its replicas.

    Returns the skip-sleep hint; raises ``RolloutError`` on failure.
    """

    def __call__(
        self,
        context: RolloutContext,
        timing: TimingConfig,
        readiness_waiter: ReadinessWaiter,
        health_checker: HealthChecker,
        logger: Any,
    ) -> bool: ...


__all__ = [
    "ResourceStore",
    "Transform",
    "Verifier",
    "HealthChecker",
    "ReadinessWaiter",
    "UpdateStrategy",
]
