"""Pool client module."""

from duco_miner.client.backoff import BackoffPolicy
from duco_miner.client.errors import ErrorKind, PoolLocatorError, SessionError
from duco_miner.client.locator import PoolAddress, PoolLocator
from duco_miner.client.session import PoolSession, SessionState
from duco_miner.client.solver_pool import SolverPool
from duco_miner.client.supervisor import Supervisor, generate_process_run_id, run_miner
from duco_miner.client.worker import ShareCounters, Worker

__all__ = [
    "BackoffPolicy",
    "ErrorKind",
    "PoolLocatorError",
    "SessionError",
    "PoolAddress",
    "PoolLocator",
    "PoolSession",
    "SessionState",
    "SolverPool",
    "Supervisor",
    "generate_process_run_id",
    "run_miner",
    "ShareCounters",
    "Worker",
]
