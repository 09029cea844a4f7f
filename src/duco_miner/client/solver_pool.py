"""Replaceable executor for the CPU-bound job search."""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Callable, Optional

from loguru import logger

ExecutorFactory = Callable[[], Executor]


class SolverPool:
    """
    Holds the executor that sessions run the solver on.

    Sessions read ``executor`` on every job instead of keeping a reference, so
    a process pool whose child died can be swapped for a new one without
    restarting the workers. Without a factory, jobs run on the loop's default
    executor.
    """

    def __init__(self, factory: Optional[ExecutorFactory] = None):
        self._factory = factory
        self._executor: Optional[Executor] = None
        self.rebuilds = 0

    @property
    def executor(self) -> Optional[Executor]:
        """Current executor, created on first use."""
        if self._executor is None and self._factory is not None:
            self._executor = self._factory()
        return self._executor

    def replace(self, broken: Optional[Executor]) -> None:
        """
        Discard ``broken`` so the next job starts a fresh executor.

        Several sessions can hit the same broken pool; only the first call
        for a given executor rebuilds it.
        """
        if broken is None or broken is not self._executor:
            return
        logger.warning("Solver pool lost a process, starting a new pool")
        self._executor = None
        self.rebuilds += 1
        broken.shutdown(wait=False, cancel_futures=True)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
