"""
Shared pytest fixtures for rollout-core tests.

This module provides:
- structlog reset between tests (the CLI reconfigures logging globally)
- A seeded in-memory store holding one three-replica workload set
- Recorder collaborators (readiness waiter, health checker, verifier)
  that remember every call and can be scripted to fail
- Fast timing so verification polling never sleeps for long

Usage:
    def test_something(store, waiter, checker, fast_timing):
        ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
import structlog

from rollout.core.settings import get_settings
from rollout.execution.cancel import CancelToken
from rollout.update.models import (
    Container,
    OrderedWorkloadSet,
    PodTemplate,
    RolloutContext,
    TimingConfig,
)
from rollout.update.store import InMemoryResourceStore

NAME = "db"
NAMESPACE = "prod"


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_structlog():
    """Restore structlog defaults after every test."""
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop the cached settings so env changes are picked up."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Model factories
# =============================================================================


def make_workload_set(
    replicas: int = 3,
    image: str = "db:v1",
    name: str = NAME,
    namespace: str = NAMESPACE,
) -> OrderedWorkloadSet:
    return OrderedWorkloadSet(
        name=name,
        namespace=namespace,
        replicas=replicas,
        template=PodTemplate(containers=[Container(name="db", image=image)]),
    )


def revision_of(image: str) -> str:
    return make_workload_set(image=image).template.revision()


@pytest.fixture
def store() -> InMemoryResourceStore:
    """Store seeded with a three-replica workload set on db:v1."""
    s = InMemoryResourceStore()
    s.put(make_workload_set())
    return s


@pytest.fixture
def fast_timing() -> TimingConfig:
    return TimingConfig(pod_update_timeout=0.2, pod_max_polling_interval=0.01)


@pytest.fixture
def logger():
    return structlog.get_logger("tests")


def make_context(
    store: InMemoryResourceStore,
    workload_set: OrderedWorkloadSet,
    cancel: CancelToken | None = None,
) -> RolloutContext:
    return RolloutContext(
        store=store,
        workload_set=workload_set,
        name=workload_set.name,
        namespace=workload_set.namespace,
        cancel=cancel or CancelToken.never(),
    )


# =============================================================================
# Recorder collaborators
# =============================================================================


class RecordingWaiter:
    """Readiness waiter that records calls and optionally fails."""

    def __init__(self, error: Exception | None = None, on_call: Callable[[], None] | None = None):
        self.error = error
        self.on_call = on_call
        self.calls = 0

    def __call__(self, cancel: CancelToken, logger: Any) -> None:
        self.calls += 1
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error


class RecordingHealthChecker:
    """Health checker that records (label, ordinal) and fails on chosen ordinals."""

    def __init__(self, fail_on: set[int] | None = None):
        self.fail_on = fail_on or set()
        self.probes: list[tuple[str, int]] = []

    def probe(self, cancel: CancelToken, logger: Any, label: str, ordinal: int) -> None:
        self.probes.append((label, ordinal))
        if ordinal in self.fail_on:
            raise RuntimeError(f"cluster unhealthy at ordinal {ordinal}")

    @property
    def ordinals(self) -> list[int]:
        return [ordinal for _, ordinal in self.probes]


class RecordingVerifier:
    """Wraps a verifier and records every ordinal it is asked about."""

    def __init__(self, inner: Callable[[RolloutContext, int, Any], None]):
        self.inner = inner
        self.ordinals: list[int] = []

    def __call__(self, context: RolloutContext, ordinal: int, logger: Any) -> None:
        self.ordinals.append(ordinal)
        self.inner(context, ordinal, logger)


@pytest.fixture
def waiter() -> RecordingWaiter:
    return RecordingWaiter()


@pytest.fixture
def checker() -> RecordingHealthChecker:
    return RecordingHealthChecker()
