"""Job solving and rate display."""

from duco_miner.mining.hashrate import format_hashrate
from duco_miner.mining.solver import DEFAULT_MULTIPLIER, candidate_count, search_bound, solve

__all__ = [
    "DEFAULT_MULTIPLIER",
    "candidate_count",
    "format_hashrate",
    "search_bound",
    "solve",
]
