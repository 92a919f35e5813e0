"""Data model for partitioned rollouts.

An ``OrderedWorkloadSet`` is the resource being rolled out: ``replicas``
numbered slots (ordinals ``0..replicas-1``) sharing one pod template, plus a
``partition`` cutoff. Slots at or above the cutoff run the current template;
slots below keep whatever revision they had.

The store owns ``resource_version`` and ``status``. Callers work on copies;
``resource_version`` on a copy is what the store compares to detect
optimistic-concurrency conflicts.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from rollout.core.hashing import revision_hash

if TYPE_CHECKING:
    from rollout.core.errors import RolloutError
    from rollout.core.protocols import ResourceStore
    from rollout.execution.cancel import CancelToken


@dataclass
class Container:
    """A named container and the image it runs."""

    name: str
    image: str


@dataclass
class PodTemplate:
    """The containers and metadata shared by every replica."""

    containers: list[Container] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    def container(self, name: str) -> Container:
        """Return the container called ``name``.

        Raises:
            KeyError: If the template has no such container
        """
        for c in self.containers:
            if c.name == name:
                return c
        raise KeyError(f"container {name!r} not found in pod template")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def revision(self) -> str:
        """Stable hash identifying this template."""
        return revision_hash(self.to_dict())


@dataclass
class WorkloadStatus:
    """Observed state, written by the store.

    Attributes:
        current_revision: Revision every replica ran before the rollout began
        update_revision: Revision of the template currently on the resource
        ready_replicas: Number of replicas reporting ready
        pod_revisions: Template revision each ordinal is running
    """

    current_revision: str = ""
    update_revision: str = ""
    ready_replicas: int = 0
    pod_revisions: dict[int, str] = field(default_factory=dict)


@dataclass
class OrderedWorkloadSet:
    """A replicated, ordinal-indexed workload with a partition cutoff."""

    name: str
    namespace: str
    replicas: int
    template: PodTemplate = field(default_factory=PodTemplate)
    partition: int | None = None
    resource_version: int = 0
    status: WorkloadStatus = field(default_factory=WorkloadStatus)

    def __post_init__(self) -> None:
        if self.replicas < 0:
            raise ValueError(f"replicas must be >= 0, got {self.replicas}")

    @property
    def key(self) -> tuple[str, str]:
        return (self.namespace, self.name)

    def copy(self) -> OrderedWorkloadSet:
        """Deep copy; mutations on the copy never reach the original."""
        return copy.deepcopy(self)

    def set_partition(self, partition: int) -> None:
        """Set the partition cutoff.

        Raises:
            ValueError: If ``partition`` is outside ``[0, replicas]``
        """
        if not 0 <= partition <= self.replicas:
            raise ValueError(
                f"partition {partition} outside [0, {self.replicas}] for {self.name}"
            )
        self.partition = partition

    def pod_name(self, ordinal: int) -> str:
        return f"{self.name}-{ordinal}"

    def pod_revision(self, ordinal: int) -> str | None:
        """Revision the pod at ``ordinal`` runs, or None if it has no pod."""
        return self.status.pod_revisions.get(ordinal)


@dataclass(frozen=True)
class TimingConfig:
    """Polling limits for one rollout.

    Attributes:
        pod_update_timeout: Seconds to wait for one ordinal to verify
        pod_max_polling_interval: Cap on the verification backoff interval
    """

    pod_update_timeout: float = 600.0
    pod_max_polling_interval: float = 30.0

    def __post_init__(self) -> None:
        if self.pod_update_timeout <= 0:
            raise ValueError("pod_update_timeout must be positive")
        if self.pod_max_polling_interval <= 0:
            raise ValueError("pod_max_polling_interval must be positive")


@dataclass(frozen=True)
class RolloutContext:
    """Everything one rollout execution threads through its steps.

    Owned by a single controller call. The strategy swaps in a freshly
    fetched ``workload_set`` with ``dataclasses.replace`` after every
    ordinal rather than mutating this object.
    """

    store: ResourceStore
    workload_set: OrderedWorkloadSet
    name: str
    namespace: str
    cancel: CancelToken


@dataclass(frozen=True)
class RolloutOutcome:
    """Result of a rollout as seen by a reconcile loop.

    ``skip_sleep`` is True when the last ordinal examined was already
    converged, i.e. the caller may shorten its own requeue delay.
    """

    skip_sleep: bool = False
    error: RolloutError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "Container",
    "PodTemplate",
    "WorkloadStatus",
    "OrderedWorkloadSet",
    "TimingConfig",
    "RolloutContext",
    "RolloutOutcome",
]
