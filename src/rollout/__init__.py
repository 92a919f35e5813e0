"""
rollout-core - partitioned, resumable rollouts for ordered replicated workloads.

Quick start::

    from rollout import (
        InMemoryResourceStore, PartitionedRollingUpdateStrategy, PodRevisionVerifier,
        RolloutController, UpdateFunctionSuite, set_container_image,
    )

    strategy = PartitionedRollingUpdateStrategy(PodRevisionVerifier(store))
    suite = UpdateFunctionSuite(set_container_image("db", "db:v2"), strategy)
    outcome = RolloutController(store, "db", "prod", suite, waiter, checker).execute()
"""

__version__ = "0.1.0"

from rollout.core.errors import (
    ErrorKind,
    RolloutError,
)
from rollout.execution.cancel import CancelToken
from rollout.update.controller import (
    RolloutController,
    UpdateFunctionSuite,
    update_cluster_region_workload_set,
)
from rollout.update.models import (
    Container,
    OrderedWorkloadSet,
    PodTemplate,
    RolloutOutcome,
    TimingConfig,
)
from rollout.update.readiness import (
    AllPodsReadyWaiter,
    NoopHealthChecker,
    PodRevisionVerifier,
    ReadyReplicasHealthChecker,
)
from rollout.update.store import InMemoryResourceStore
from rollout.update.strategy import PartitionedRollingUpdateStrategy
from rollout.update.transforms import chain, set_annotation, set_container_image

__all__ = [
    "__version__",
    "ErrorKind",
    "RolloutError",
    "CancelToken",
    "RolloutController",
    "UpdateFunctionSuite",
    "update_cluster_region_workload_set",
    "Container",
    "OrderedWorkloadSet",
    "PodTemplate",
    "RolloutOutcome",
    "TimingConfig",
    "AllPodsReadyWaiter",
    "NoopHealthChecker",
    "PodRevisionVerifier",
    "ReadyReplicasHealthChecker",
    "InMemoryResourceStore",
    "PartitionedRollingUpdateStrategy",
    "chain",
    "set_annotation",
    "set_container_image",
]
