"""Rollout Update -- the partitioned update of one ordered workload set.

Architecture::

    models.py       OrderedWorkloadSet, RolloutContext, TimingConfig, RolloutOutcome
    classifier.py   Store error classification + logging
    strategy.py     PartitionedRollingUpdateStrategy (the per-ordinal state machine)
    controller.py   update_cluster_region_workload_set() / RolloutController
    readiness.py    Default verifier, readiness waiter and health probes
    transforms.py   Reusable workload set transforms
    store.py        InMemoryResourceStore
"""
