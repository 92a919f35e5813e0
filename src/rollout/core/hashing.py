"""
Deterministic hashing for pod template revisions.

A workload set's *update revision* is the hash of its pod template. Two
templates with the same containers, labels and annotations hash to the same
revision regardless of dict ordering, so re-applying an unchanged template is
recognised as already converged.

Examples:
    >>> compute_hash("a", "b") != compute_hash("b", "a")
    True
    >>> len(compute_hash("test", length=10))
    10
    >>> revision_hash({"b": 1, "a": 2}) == revision_hash({"a": 2, "b": 1})
    True
"""

import hashlib
import json
from typing import Any


def compute_hash(*values: Any, length: int = 32) -> str:
    """
    Compute deterministic hash from values.

    Concatenates the string form of every value with a '|' delimiter and
    takes the SHA-256 hex digest. Order-dependent: (a, b) != (b, a).

    Args:
        *values: Values to hash (converted to strings)
        length: Hex digest length (default 32 = 128 bits)

    Returns:
        Hex string of specified length
    """
    content = "|".join(str(v) for v in values)
    return hashlib.sha256(content.encode()).hexdigest()[:length]


def revision_hash(payload: Any, length: int = 10) -> str:
    """Hash a JSON-compatible payload with canonical key ordering."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return compute_hash(canonical, length=length)


__all__ = ["compute_hash", "revision_hash"]
