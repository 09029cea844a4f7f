"""Brute-force nonce search for pool jobs."""

from __future__ import annotations

import hashlib
import time
from typing import Optional

from duco_miner.protocol.messages import Job, Solution

# Highest nonce tried is difficulty * DEFAULT_MULTIPLIER
DEFAULT_MULTIPLIER = 100


def search_bound(job: Job, multiplier: int = DEFAULT_MULTIPLIER) -> int:
    """Return the highest nonce the search will try (inclusive)."""
    return job.difficulty * multiplier


def candidate_count(job: Job, multiplier: int = DEFAULT_MULTIPLIER) -> int:
    """Return how many nonces an exhaustive search of ``job`` hashes."""
    return search_bound(job, multiplier) + 1


def solve(job: Job, multiplier: int = DEFAULT_MULTIPLIER) -> Optional[Solution]:
    """
    Search nonces 0..difficulty*multiplier in increasing order.

    The SHA-1 state for ``job.base`` is computed once and copied for every
    candidate. The lowest matching nonce wins.

    Args:
        job: Job to solve.
        multiplier: Search bound multiplier.

    Returns:
        The first matching Solution, or None if the range holds no match.
    """
    prefix = hashlib.sha1(job.base.encode("utf-8"))
    target = job.target
    start = time.perf_counter_ns()

    for nonce in range(search_bound(job, multiplier) + 1):
        h = prefix.copy()
        h.update(str(nonce).encode("ascii"))
        if h.digest() == target:
            elapsed_us = (time.perf_counter_ns() - start) // 1000
            return Solution(nonce=nonce, elapsed_us=elapsed_us)

    return None
