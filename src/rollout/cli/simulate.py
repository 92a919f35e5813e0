"""
CLI: ``rollout-core simulate``: dry-run a rollout against an in-memory store.

Seeds an ``InMemoryResourceStore`` with a workload set, optionally marks the
highest ordinals as already updated (as after an interrupted rollout) and
queues update conflicts, then runs the partitioned strategy end to end and
prints the partitions it persisted.
"""

from __future__ import annotations

import sys

import typer

from rollout.cli.utils import output_outcome
from rollout.core.errors import ConflictError
from rollout.core.logging import configure_logging, get_logger
from rollout.core.settings import get_settings
from rollout.execution.backoff import ExponentialBackoff
from rollout.update.controller import RolloutController, UpdateFunctionSuite
from rollout.update.models import Container, OrderedWorkloadSet, PodTemplate, TimingConfig
from rollout.update.readiness import (
    AllPodsReadyWaiter,
    PodRevisionVerifier,
    ReadyReplicasHealthChecker,
)
from rollout.update.store import InMemoryResourceStore
from rollout.update.strategy import PartitionedRollingUpdateStrategy
from rollout.update.transforms import set_container_image


def simulate(
    replicas: int = typer.Option(3, "--replicas", "-r", min=0, help="Number of replicas."),
    image: str = typer.Option("db:v2", "--image", help="Image to roll out."),
    from_image: str = typer.Option("db:v1", "--from-image", help="Image replicas start on."),
    container: str = typer.Option("db", "--container", help="Container to update."),
    name: str = typer.Option("db", "--name", help="Workload set name."),
    namespace: str = typer.Option("default", "--namespace", "-n", help="Workload set namespace."),
    already_updated: int = typer.Option(
        0, "--already-updated", min=0, help="Highest ordinals already on the new image."
    ),
    conflicts: int = typer.Option(0, "--conflicts", min=0, help="Update conflicts to inject."),
    pod_update_timeout: float | None = typer.Option(None, "--pod-update-timeout", help="Seconds."),
    json_out: bool = typer.Option(False, "--json", help="Print the outcome as JSON."),
    log_level: str | None = typer.Option(None, "--log-level", help="Override ROLLOUT_LOG_LEVEL."),
) -> None:
    """Simulate a partitioned rollout and print the persisted partitions."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        json_format=settings.log_json if settings.log_json is not None else json_out,
        stream=sys.stderr,
    )
    logger = get_logger("rollout.simulate")

    store = InMemoryResourceStore()
    initial = OrderedWorkloadSet(
        name=name,
        namespace=namespace,
        replicas=replicas,
        template=PodTemplate(containers=[Container(name=container, image=from_image)]),
    )
    store.put(initial)

    transform = set_container_image(container, image)
    new_revision = transform(initial).template.revision()
    for ordinal in range(replicas - 1, max(replicas - 1 - already_updated, -1), -1):
        store.set_pod_revision(name, namespace, ordinal, new_revision)

    store.inject_update_errors(
        ConflictError(f'Operation cannot be fulfilled on "{name}": the object has been modified')
        for _ in range(conflicts)
    )

    timing = settings.timing()
    if pod_update_timeout is not None:
        timing = TimingConfig(
            pod_update_timeout=pod_update_timeout,
            pod_max_polling_interval=timing.pod_max_polling_interval,
        )

    strategy = PartitionedRollingUpdateStrategy(
        PodRevisionVerifier(store), settings.conflict_policy()
    )
    controller = RolloutController(
        store,
        name,
        namespace,
        UpdateFunctionSuite(update_func=transform, strategy=strategy),
        readiness_waiter=AllPodsReadyWaiter(
            store,
            name,
            namespace,
            ExponentialBackoff.for_timing(
                timing.pod_update_timeout, timing.pod_max_polling_interval
            ),
        ),
        health_checker=ReadyReplicasHealthChecker(store, name, namespace),
        timing=timing,
        logger=logger,
    )

    outcome = controller.execute()
    output_outcome(outcome, store.partitions(), as_json=json_out)
