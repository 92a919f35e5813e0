"""Reusable workload set transforms.

A transform takes the fetched workload set and returns the desired one. The
controller hands transforms a private copy, but these helpers copy again so
they stay pure when called directly.

Example:
    >>> suite = UpdateFunctionSuite(
    ...     update_func=chain(
    ...         set_container_image("db", "cockroachdb/cockroach:v24.1.0"),
    ...         set_annotation("rollout/version", "v24.1.0"),
    ...     ),
    ...     strategy=PartitionedRollingUpdateStrategy(verifier),
    ... )
"""

from __future__ import annotations

from collections.abc import Callable

from rollout.update.models import OrderedWorkloadSet

TransformFunc = Callable[[OrderedWorkloadSet], OrderedWorkloadSet]


def set_container_image(container: str, image: str) -> TransformFunc:
    """Transform that points ``container`` at ``image``.

    The returned transform raises KeyError if the template has no such
    container.
    """

    def transform(workload_set: OrderedWorkloadSet) -> OrderedWorkloadSet:
        desired = workload_set.copy()
        desired.template.container(container).image = image
        return desired

    return transform


def set_annotation(key: str, value: str) -> TransformFunc:
    """Transform that sets a pod template annotation."""

    def transform(workload_set: OrderedWorkloadSet) -> OrderedWorkloadSet:
        desired = workload_set.copy()
        desired.template.annotations[key] = value
        return desired

    return transform


def chain(*transforms: TransformFunc) -> TransformFunc:
    """Apply ``transforms`` left to right."""

    def transform(workload_set: OrderedWorkloadSet) -> OrderedWorkloadSet:
        for step in transforms:
            workload_set = step(workload_set)
        return workload_set

    return transform


__all__ = ["set_container_image", "set_annotation", "chain"]
