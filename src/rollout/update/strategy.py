"""Partitioned rolling update: one ordinal at a time, highest first.

When a workload set's partition is set to ``p``, only replicas with ordinal
``>= p`` move to the new template. Lowering the partition from ``N-1`` to
``0`` one step at a time therefore replaces one replica per step, and the
strategy checks the replica converged and the cluster is healthy before
lowering it again.

Per ordinal ``p`` (``N-1`` down to ``0``)::

    verifier(p) passes?  ── yes ──▶ skip_sleep = True, next ordinal
          │ no
          ▼
    readiness_waiter()            (fatal before any mutation)
    partition = p, persist        (conflicts retried with re-read)
    poll verifier(p)              (fatal on timeout)
    re-read workload set          (next update must use the new version)
    health_checker.probe(p)       (fatal, keeps skip_sleep)

Because the first step asks whether ``p`` is already converged, re-running a
rollout that crashed half way picks up at the first unconverged ordinal
without repeating readiness waits for the ones already done.
"""

from __future__ import annotations

import copy
from dataclasses import replace
from typing import Any

from rollout.core.errors import (
    CancelledError,
    ErrorContext,
    HealthProbeError,
    ReadinessWaitError,
    VerificationTimeoutError,
)
from rollout.core.protocols import HealthChecker, ReadinessWaiter, Verifier
from rollout.execution.backoff import ExponentialBackoff, poll_until
from rollout.execution.conflict import ConflictRetryPolicy, update_with_conflict_retry
from rollout.update.classifier import handle_store_error
from rollout.update.models import (
    OrderedWorkloadSet,
    PodTemplate,
    RolloutContext,
    TimingConfig,
)


class PartitionedRollingUpdateStrategy:
    """Rolls a transformed workload set out one replica at a time.

    Parameters
    ----------
    verifier
        Per-ordinal convergence check. Used before mutating (to skip
        ordinals that are already done) and after (polled until it passes).
    conflict_policy
        Attempt budget for updates that hit optimistic-concurrency conflicts.
    """

    def __init__(
        self,
        verifier: Verifier,
        conflict_policy: ConflictRetryPolicy | None = None,
    ) -> None:
        self.verifier = verifier
        self.conflict_policy = conflict_policy or ConflictRetryPolicy()

    def __call__(
        self,
        context: RolloutContext,
        timing: TimingConfig,
        readiness_waiter: ReadinessWaiter,
        health_checker: HealthChecker,
        logger: Any,
    ) -> bool:
        skip_sleep = False
        name, namespace = context.name, context.namespace
        desired = context.workload_set

        for partition in range(desired.replicas - 1, -1, -1):
            context.cancel.check(f"rollout of {name}")

            if self._converged(context, partition, logger):
                logger.debug("already updated, skipping sleep", partition=partition)
                skip_sleep = True
                continue

            skip_sleep = False
            try:
                readiness_waiter(context.cancel, logger)
            except CancelledError:
                raise
            except Exception as exc:
                logger.error(
                    "error while waiting for all pods to be ready",
                    name=name,
                    namespace=namespace,
                    partition=partition,
                    message=str(exc),
                )
                raise ReadinessWaitError(
                    f"error while waiting for all pods to be ready: {exc}",
                    context=ErrorContext(name=name, namespace=namespace, ordinal=partition),
                    cause=exc,
                ) from exc

            self._persist_partition(context, desired.template, partition, logger)

            logger.debug("waiting until partition done updating", partition=partition)
            self._wait_until_verified(context, partition, timing, logger)

            try:
                fresh = context.store.get(name, namespace)
            except CancelledError:
                raise
            except Exception as exc:
                raise handle_store_error(exc, logger, name, namespace, ordinal=partition) from exc
            context = replace(context, workload_set=fresh)

            try:
                health_checker.probe(
                    context.cancel, logger, f"between updating pods for {name}", partition
                )
            except CancelledError:
                raise
            except Exception as exc:
                logger.error(
                    "health probe failed",
                    name=name,
                    namespace=namespace,
                    partition=partition,
                    message=str(exc),
                )
                raise HealthProbeError(
                    f"health probe failed after updating pod {partition}: {exc}",
                    context=ErrorContext(name=name, namespace=namespace, ordinal=partition),
                    cause=exc,
                    skip_sleep=skip_sleep,
                ) from exc

        return skip_sleep

    def _converged(self, context: RolloutContext, partition: int, logger: Any) -> bool:
        try:
            self.verifier(context, partition, logger)
        except CancelledError:
            raise
        except Exception:
            return False
        return True

    def _persist_partition(
        self,
        context: RolloutContext,
        template: PodTemplate,
        partition: int,
        logger: Any,
    ) -> None:
        def reapply(workload_set: OrderedWorkloadSet) -> None:
            workload_set.template = copy.deepcopy(template)
            workload_set.set_partition(partition)

        candidate = context.workload_set.copy()
        reapply(candidate)
        try:
            stored = update_with_conflict_retry(
                context.store,
                candidate,
                reapply,
                self.conflict_policy,
                context.cancel,
                logger=logger,
            )
        except CancelledError:
            raise
        except Exception as exc:
            raise handle_store_error(
                exc, logger, context.name, context.namespace, ordinal=partition
            ) from exc
        logger.info(
            "partition persisted",
            name=context.name,
            partition=partition,
            resource_version=stored.resource_version,
        )

    def _wait_until_verified(
        self,
        context: RolloutContext,
        partition: int,
        timing: TimingConfig,
        logger: Any,
    ) -> None:
        backoff = ExponentialBackoff.for_timing(
            timing.pod_update_timeout, timing.pod_max_polling_interval
        )
        try:
            poll_until(
                lambda: self.verifier(context, partition, logger),
                backoff,
                context.cancel,
                operation=f"verification of pod {partition}",
                on_retry=lambda attempt, error, delay: logger.debug(
                    "pod not verified yet",
                    partition=partition,
                    attempt=attempt,
                    delay=round(delay, 3),
                    message=str(error),
                ),
            )
        except VerificationTimeoutError as exc:
            logger.error(
                "error while running verification on pod",
                name=context.name,
                namespace=context.namespace,
                partition=partition,
                message=exc.message,
            )
            raise exc.wrap(
                f"error while running verification on pod {partition}",
                name=context.name,
                namespace=context.namespace,
                ordinal=partition,
            ) from exc


def partitioned_rolling_update_strategy(
    verifier: Verifier,
    conflict_policy: ConflictRetryPolicy | None = None,
) -> PartitionedRollingUpdateStrategy:
    """Build the default strategy around a per-pod verifier."""
    return PartitionedRollingUpdateStrategy(verifier, conflict_policy)


__all__ = [
    "PartitionedRollingUpdateStrategy",
    "partitioned_rolling_update_strategy",
]
