"""Command-line interface for rollout-core."""
