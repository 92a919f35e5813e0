"""Default readiness, health and convergence collaborators.

These are the collaborators a rollout needs when the store itself reports
per-replica revisions and readiness (as ``InMemoryResourceStore`` does).
Deployments that check a real database cluster inject their own
implementations of the same protocols.
"""

from __future__ import annotations

from typing import Any

from rollout.core.errors import NotFoundError
from rollout.core.protocols import ResourceStore
from rollout.execution.backoff import ExponentialBackoff, poll_until
from rollout.execution.cancel import CancelToken
from rollout.update.models import RolloutContext


class NotConvergedError(Exception):
    """A replica or the cluster is not yet in the expected state."""


class PodRevisionVerifier:
    """Passes once the pod at an ordinal runs the desired template.

    The desired revision comes from the template in the rollout context,
    never from the store, so a pod still on the old template is reported as
    not converged even before the new template has been persisted.
    """

    def __init__(self, store: ResourceStore) -> None:
        self.store = store

    def __call__(self, context: RolloutContext, ordinal: int, logger: Any) -> None:
        desired = context.workload_set.template.revision()
        current = self.store.get(context.name, context.namespace)
        revision = current.pod_revision(ordinal)
        if revision is None:
            raise NotFoundError(f"pod {current.pod_name(ordinal)} not found")
        if revision != desired:
            logger.debug(
                "pod not yet updated",
                pod=current.pod_name(ordinal),
                revision=revision,
                desired=desired,
            )
            raise NotConvergedError(
                f"pod {current.pod_name(ordinal)} runs revision {revision}, want {desired}"
            )


def _check_all_ready(store: ResourceStore, name: str, namespace: str) -> None:
    current = store.get(name, namespace)
    if current.status.ready_replicas < current.replicas:
        raise NotConvergedError(
            f"{current.status.ready_replicas}/{current.replicas} replicas of {name} ready"
        )


class AllPodsReadyWaiter:
    """Blocks until every replica of a workload set reports ready.

    Raises ``VerificationTimeoutError`` when the backoff budget runs out;
    the strategy reports that as a readiness-wait failure.
    """

    def __init__(
        self,
        store: ResourceStore,
        name: str,
        namespace: str,
        backoff: ExponentialBackoff | None = None,
    ) -> None:
        self.store = store
        self.name = name
        self.namespace = namespace
        self.backoff = backoff or ExponentialBackoff(max_elapsed_time=300.0, max_interval=10.0)

    def __call__(self, cancel: CancelToken, logger: Any) -> None:
        logger.debug("waiting until all pods are ready", name=self.name)
        state = poll_until(
            lambda: _check_all_ready(self.store, self.name, self.namespace),
            self.backoff,
            cancel,
            operation=f"readiness of {self.name}",
        )
        logger.debug("all pods ready", name=self.name, attempts=state.attempts)


class ReadyReplicasHealthChecker:
    """Single-shot health probe: every replica must be ready right now."""

    def __init__(self, store: ResourceStore, name: str, namespace: str) -> None:
        self.store = store
        self.name = name
        self.namespace = namespace

    def probe(self, cancel: CancelToken, logger: Any, label: str, ordinal: int) -> None:
        cancel.check(label)
        _check_all_ready(self.store, self.name, self.namespace)
        logger.debug("health probe passed", checkpoint=label, ordinal=ordinal)


class NoopHealthChecker:
    """Health probe that always passes; for clusters without a probe."""

    def probe(self, cancel: CancelToken, logger: Any, label: str, ordinal: int) -> None:
        cancel.check(label)
        logger.debug("health probe skipped", checkpoint=label, ordinal=ordinal)


__all__ = [
    "NotConvergedError",
    "PodRevisionVerifier",
    "AllPodsReadyWaiter",
    "ReadyReplicasHealthChecker",
    "NoopHealthChecker",
]
