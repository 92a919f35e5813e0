"""In-memory resource store with optimistic concurrency.

``InMemoryResourceStore`` behaves like the API server the rollout normally
talks to, closely enough to run rollouts end to end in tests and in the
``simulate`` CLI command:

- every ``update`` must carry the current ``resource_version`` or it is
  rejected with ``ConflictError``; a successful update bumps the version
- the store owns ``status``: on update it recomputes ``update_revision`` from
  the template and, with ``auto_converge``, moves every replica at or above
  the partition onto that revision
- ``inject_update_errors`` / ``inject_get_errors`` queue failures for the
  next calls, which is how conflicts and outages are simulated

The store is shared between threads, so access is serialised with a lock.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable

from rollout.core.errors import ConflictError, NotFoundError
from rollout.update.models import OrderedWorkloadSet, WorkloadStatus


class InMemoryResourceStore:
    """Dictionary-backed ``ResourceStore``.

    Parameters
    ----------
    auto_converge
        Move replicas at or above the partition to the update revision as
        part of every successful update, as if pods restarted instantly.
    """

    def __init__(self, auto_converge: bool = True) -> None:
        self.auto_converge = auto_converge
        self._items: dict[tuple[str, str], OrderedWorkloadSet] = {}
        self._lock = threading.Lock()
        self._update_errors: deque[Exception] = deque()
        self._get_errors: deque[Exception] = deque()
        self.history: list[OrderedWorkloadSet] = []
        self.update_calls = 0
        self.get_calls = 0

    # ------------------------------------------------------------------
    # ResourceStore
    # ------------------------------------------------------------------

    def get(self, name: str, namespace: str) -> OrderedWorkloadSet:
        with self._lock:
            self.get_calls += 1
            if self._get_errors:
                raise self._get_errors.popleft()
            try:
                return self._items[(namespace, name)].copy()
            except KeyError:
                raise NotFoundError(
                    f'workload set "{name}" not found in namespace "{namespace}"'
                ) from None

    def update(self, workload_set: OrderedWorkloadSet) -> OrderedWorkloadSet:
        with self._lock:
            self.update_calls += 1
            if self._update_errors:
                raise self._update_errors.popleft()

            stored = self._items.get(workload_set.key)
            if stored is None:
                raise NotFoundError(
                    f'workload set "{workload_set.name}" not found in namespace "{workload_set.namespace}"'
                )
            if workload_set.resource_version != stored.resource_version:
                raise ConflictError(
                    f'Operation cannot be fulfilled on "{workload_set.name}": the object has '
                    "been modified; please apply your changes to the latest version and try again"
                )

            updated = workload_set.copy()
            updated.resource_version = stored.resource_version + 1
            updated.status = stored.status
            self._reconcile_status(updated)

            self._items[updated.key] = updated
            self.history.append(updated.copy())
            return updated.copy()

    # ------------------------------------------------------------------
    # Seeding and fault injection
    # ------------------------------------------------------------------

    def put(self, workload_set: OrderedWorkloadSet) -> OrderedWorkloadSet:
        """Create or replace a workload set, bypassing conflict checks.

        A fresh status is derived when the given one is empty: every
        replica runs the template's revision and is ready.
        """
        item = workload_set.copy()
        if not item.status.update_revision:
            revision = item.template.revision()
            item.status = WorkloadStatus(
                current_revision=revision,
                update_revision=revision,
                ready_replicas=item.replicas,
                pod_revisions={ordinal: revision for ordinal in range(item.replicas)},
            )
        with self._lock:
            existing = self._items.get(item.key)
            if existing is not None:
                item.resource_version = existing.resource_version + 1
            self._items[item.key] = item
        return item.copy()

    def touch(self, name: str, namespace: str) -> None:
        """Bump the resource version, as a concurrent writer would."""
        with self._lock:
            self._items[(namespace, name)].resource_version += 1

    def set_ready_replicas(self, name: str, namespace: str, ready: int) -> None:
        with self._lock:
            self._items[(namespace, name)].status.ready_replicas = ready

    def set_pod_revision(self, name: str, namespace: str, ordinal: int, revision: str) -> None:
        with self._lock:
            self._items[(namespace, name)].status.pod_revisions[ordinal] = revision

    def inject_update_errors(self, errors: Iterable[Exception]) -> None:
        """Raise ``errors`` from the next ``update`` calls, in order."""
        with self._lock:
            self._update_errors.extend(errors)

    def inject_get_errors(self, errors: Iterable[Exception]) -> None:
        """Raise ``errors`` from the next ``get`` calls, in order."""
        with self._lock:
            self._get_errors.extend(errors)

    def partitions(self) -> list[int | None]:
        """Partition values of every persisted update, oldest first."""
        return [item.partition for item in self.history]

    # ------------------------------------------------------------------

    def _reconcile_status(self, item: OrderedWorkloadSet) -> None:
        status = item.status
        revision = item.template.revision()
        if revision != status.update_revision:
            if all(r == status.update_revision for r in status.pod_revisions.values()):
                status.current_revision = status.update_revision
            status.update_revision = revision

        for ordinal in list(status.pod_revisions):
            if ordinal >= item.replicas:
                del status.pod_revisions[ordinal]

        if not self.auto_converge:
            return
        cutoff = item.partition or 0
        for ordinal in range(item.replicas):
            if ordinal >= cutoff or ordinal not in status.pod_revisions:
                status.pod_revisions[ordinal] = revision
        if all(r == revision for r in status.pod_revisions.values()):
            status.current_revision = revision
        status.ready_replicas = item.replicas


__all__ = ["InMemoryResourceStore"]
