"""Tests for the rollout controller."""

import io
import json

import pytest
import structlog
from structlog.testing import capture_logs

from conftest import NAME, NAMESPACE, RecordingHealthChecker
from rollout.core.errors import (
    CancelledError,
    ConflictError,
    ErrorKind,
    HealthProbeError,
    ResourceNotFoundError,
    RolloutError,
    TransformError,
)
from rollout.core.logging import configure_logging
from rollout.execution.cancel import CancelToken
from rollout.execution.conflict import ConflictRetryPolicy
from rollout.update.controller import (
    RolloutController,
    UpdateFunctionSuite,
    update_cluster_region_workload_set,
)
from rollout.update.readiness import PodRevisionVerifier
from rollout.update.store import InMemoryResourceStore
from rollout.update.strategy import PartitionedRollingUpdateStrategy
from rollout.update.transforms import set_container_image


class RecordingTransform:
    def __init__(self, inner=None, error=None):
        self.inner = inner or set_container_image("db", "db:v2")
        self.error = error
        self.calls = 0

    def __call__(self, workload_set):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.inner(workload_set)


def default_suite(store, transform=None):
    return UpdateFunctionSuite(
        update_func=transform or set_container_image("db", "db:v2"),
        strategy=PartitionedRollingUpdateStrategy(
            PodRevisionVerifier(store), ConflictRetryPolicy(delay=0.0, jitter=0.0)
        ),
    )


def make_controller(store, waiter, checker, timing, suite=None):
    return RolloutController(
        store,
        NAME,
        NAMESPACE,
        suite or default_suite(store),
        readiness_waiter=waiter,
        health_checker=checker,
        timing=timing,
        logger=structlog.get_logger(),
    )


class TestUpdateClusterRegionWorkloadSet:
    """Function form: returns skip_sleep or raises."""

    def test_full_rollout(self, store, waiter, checker, fast_timing):
        skip_sleep = update_cluster_region_workload_set(
            store,
            NAME,
            NAMESPACE,
            default_suite(store),
            waiter,
            fast_timing,
            checker,
            structlog.get_logger(),
        )
        assert skip_sleep is False
        assert store.partitions() == [2, 1, 0]

    def test_not_found_skips_transform(self, waiter, checker, fast_timing):
        store = InMemoryResourceStore()
        transform = RecordingTransform()

        with capture_logs() as logs:
            with pytest.raises(ResourceNotFoundError) as exc_info:
                update_cluster_region_workload_set(
                    store,
                    NAME,
                    NAMESPACE,
                    default_suite(store, transform),
                    waiter,
                    fast_timing,
                    checker,
                    structlog.get_logger(),
                )

        assert exc_info.value.message == "workload set is not found: db ns: prod"
        assert transform.calls == 0
        assert waiter.calls == 0
        errors = [e for e in logs if e["log_level"] == "error"]
        assert len(errors) == 1
        assert errors[0]["namespace"] == NAMESPACE

    def test_transform_failure_writes_nothing(self, store, waiter, checker, fast_timing):
        transform = RecordingTransform(error=KeyError("container 'cache' not found"))

        with pytest.raises(TransformError) as exc_info:
            update_cluster_region_workload_set(
                store,
                NAME,
                NAMESPACE,
                default_suite(store, transform),
                waiter,
                fast_timing,
                checker,
                structlog.get_logger(),
            )

        err = exc_info.value
        assert err.kind is ErrorKind.TRANSFORM
        assert err.message.startswith("error applying update func to db prod")
        assert isinstance(err.cause, KeyError)
        assert store.update_calls == 0

    def test_transform_gets_private_copy(self, store, waiter, checker, fast_timing):
        seen = []

        def transform(workload_set):
            seen.append(workload_set)
            return set_container_image("db", "db:v2")(workload_set)

        update_cluster_region_workload_set(
            store,
            NAME,
            NAMESPACE,
            default_suite(store, transform),
            waiter,
            fast_timing,
            checker,
            structlog.get_logger(),
        )
        seen[0].template.container("db").image = "mutated"
        assert store.get(NAME, NAMESPACE).template.container("db").image == "db:v2"

    def test_strategy_error_is_wrapped(self, store, waiter, fast_timing):
        checker = RecordingHealthChecker(fail_on={2})

        with capture_logs() as logs:
            with pytest.raises(HealthProbeError) as exc_info:
                update_cluster_region_workload_set(
                    store,
                    NAME,
                    NAMESPACE,
                    default_suite(store),
                    waiter,
                    fast_timing,
                    checker,
                    structlog.get_logger(),
                )

        err = exc_info.value
        assert err.message.startswith("error applying update strategy to db prod: ")
        assert err.kind is ErrorKind.HEALTH_PROBE
        assert err.context.ordinal == 2
        assert err.context.namespace == NAMESPACE
        assert any(e["event"] == "error applying update strategy" for e in logs)

    def test_strategy_skip_sleep_survives_failure(self, store, waiter, checker, fast_timing):
        def strategy(context, timing, readiness_waiter, health_checker, logger):
            raise RolloutError("late failure", skip_sleep=True)

        suite = UpdateFunctionSuite(update_func=set_container_image("db", "db:v2"), strategy=strategy)

        with pytest.raises(RolloutError) as exc_info:
            update_cluster_region_workload_set(
                store, NAME, NAMESPACE, suite, waiter, fast_timing, checker, structlog.get_logger()
            )
        assert exc_info.value.skip_sleep is True

    def test_unexpected_strategy_failure_is_wrapped(self, store, waiter, checker, fast_timing):
        def strategy(context, timing, readiness_waiter, health_checker, logger):
            raise RuntimeError("strategy crashed")

        suite = UpdateFunctionSuite(update_func=set_container_image("db", "db:v2"), strategy=strategy)

        with capture_logs() as logs:
            with pytest.raises(RolloutError) as exc_info:
                update_cluster_region_workload_set(
                    store, NAME, NAMESPACE, suite, waiter, fast_timing, checker, structlog.get_logger()
                )

        err = exc_info.value
        assert err.message == "error applying update strategy to db prod: strategy crashed"
        assert err.kind is ErrorKind.OTHER
        assert err.context.namespace == NAMESPACE
        assert isinstance(err.cause, RuntimeError)
        assert isinstance(err.__cause__, RuntimeError)
        errors = [e for e in logs if e["log_level"] == "error"]
        assert [e["event"] for e in errors] == ["error applying update strategy"]
        assert errors[0]["name"] == NAME

    def test_cancelled_before_fetch(self, store, waiter, checker, fast_timing):
        token = CancelToken()
        token.cancel()
        gets = store.get_calls

        with pytest.raises(CancelledError):
            update_cluster_region_workload_set(
                store,
                NAME,
                NAMESPACE,
                default_suite(store),
                waiter,
                fast_timing,
                checker,
                structlog.get_logger(),
                token,
            )
        assert store.get_calls == gets


class TestRolloutController:
    """Object form and RolloutOutcome reporting."""

    def test_run(self, store, waiter, checker, fast_timing):
        assert make_controller(store, waiter, checker, fast_timing).run() is False

    def test_execute_success(self, store, waiter, checker, fast_timing):
        outcome = make_controller(store, waiter, checker, fast_timing).execute()
        assert outcome.ok is True
        assert outcome.skip_sleep is False
        assert outcome.error is None

    def test_execute_already_converged(self, store, waiter, checker, fast_timing):
        make_controller(store, waiter, checker, fast_timing).run()

        outcome = make_controller(store, waiter, checker, fast_timing).execute()
        assert outcome.ok is True
        assert outcome.skip_sleep is True

    def test_execute_reports_error(self, waiter, checker, fast_timing):
        store = InMemoryResourceStore()
        outcome = make_controller(store, waiter, checker, fast_timing).execute()
        assert outcome.ok is False
        assert outcome.error.kind is ErrorKind.NOT_FOUND

    def test_execute_reports_connection_failure_on_fetch(self, store, waiter, checker, fast_timing):
        store.inject_get_errors([ConnectionError("connection reset by peer")])

        with capture_logs() as logs:
            outcome = make_controller(store, waiter, checker, fast_timing).execute()

        assert outcome.ok is False
        assert isinstance(outcome.error, RolloutError)
        assert outcome.error.kind is ErrorKind.OTHER
        assert outcome.error.message == "error accessing db ns: prod: connection reset by peer"
        assert isinstance(outcome.error.cause, ConnectionError)
        assert store.update_calls == 0
        errors = [e for e in logs if e["log_level"] == "error"]
        assert len(errors) == 1
        assert errors[0]["name"] == NAME
        assert errors[0]["namespace"] == NAMESPACE

    def test_execute_reports_connection_failure_on_update(self, store, waiter, checker, fast_timing):
        store.inject_update_errors([ConnectionError("connection reset by peer")])

        outcome = make_controller(store, waiter, checker, fast_timing).execute()

        assert outcome.ok is False
        assert isinstance(outcome.error, RolloutError)
        assert outcome.error.kind is ErrorKind.OTHER
        assert outcome.error.context.ordinal == 2
        assert outcome.error.message.startswith("error applying update strategy to db prod: ")
        assert "connection reset by peer" in outcome.error.message
        assert store.partitions() == []

    def test_execute_retries_conflicts(self, store, waiter, checker, fast_timing):
        store.inject_update_errors([ConflictError("the object has been modified")])

        outcome = make_controller(store, waiter, checker, fast_timing).execute()

        assert outcome.ok is True
        assert store.partitions() == [2, 1, 0]

    def test_execute_keeps_error_skip_sleep(self, store, waiter, checker, fast_timing):
        def strategy(context, timing, readiness_waiter, health_checker, logger):
            raise RolloutError("late failure", skip_sleep=True)

        suite = UpdateFunctionSuite(update_func=set_container_image("db", "db:v2"), strategy=strategy)
        outcome = make_controller(store, waiter, checker, fast_timing, suite).execute()
        assert outcome.skip_sleep is True
        assert outcome.error is not None

    def test_default_logger_full_rollout(self, store, waiter, checker):
        stream = io.StringIO()
        configure_logging(level="DEBUG", json_format=True, stream=stream)
        controller = RolloutController(
            store, NAME, NAMESPACE, default_suite(store), waiter, checker
        )

        outcome = controller.execute()

        assert outcome.ok is True
        assert controller.timing.pod_update_timeout == 600.0
        assert store.partitions() == [2, 1, 0]
        records = [json.loads(line) for line in stream.getvalue().splitlines()]
        persisted = [r for r in records if r["event"] == "partition persisted"]
        assert [r["partition"] for r in persisted] == [2, 1, 0]
        for record in persisted:
            assert record["logger_name"] == "rollout.update.controller"
            assert record["rollout"] == NAME
            assert record["namespace"] == NAMESPACE
        assert structlog.contextvars.get_contextvars() == {}
