"""Launches and waits on the configured number of workers."""

from __future__ import annotations

import asyncio
import random
from concurrent.futures import ProcessPoolExecutor
from typing import TYPE_CHECKING, List, Optional

from loguru import logger

from duco_miner.client.backoff import BackoffPolicy
from duco_miner.client.locator import PoolLocator
from duco_miner.client.solver_pool import SolverPool
from duco_miner.client.worker import Worker

if TYPE_CHECKING:
    from duco_miner.config.models import MinerConfig

PROCESS_RUN_ID_MIN = 10000
PROCESS_RUN_ID_MAX = 99999


def generate_process_run_id() -> int:
    """Draw the identifier the pool uses to group this process's workers."""
    return random.randint(PROCESS_RUN_ID_MIN, PROCESS_RUN_ID_MAX)


class Supervisor:
    """
    Owns the worker tasks of one process.

    All workers share one process run id and one solver pool; each gets
    its own deep copy of the configuration. Workers do not exit under normal
    operation, so ``run()`` lasts until stopped.
    """

    def __init__(
        self,
        config: MinerConfig,
        process_run_id: Optional[int] = None,
        solver_pool: Optional[SolverPool] = None,
    ):
        """
        Initialize the supervisor.

        Args:
            config: Loaded configuration.
            process_run_id: Fixed run id (generated when omitted).
            solver_pool: Solver executor holder; built from ``config.solver``
                when omitted.
        """
        self.config = config
        self.process_run_id = (
            process_run_id if process_run_id is not None else generate_process_run_id()
        )
        self._owns_solver_pool = solver_pool is None
        self.solver_pool = solver_pool or self._create_solver_pool()
        self.workers: List[Worker] = []
        self._tasks: List[asyncio.Task] = []

    def _create_solver_pool(self) -> SolverPool:
        if not self.config.solver.use_processes:
            return SolverPool()
        max_workers = self.config.thread_count
        return SolverPool(lambda: ProcessPoolExecutor(max_workers=max_workers))

    def _create_workers(self) -> List[Worker]:
        workers = []
        for index in range(self.config.thread_count):
            config = self.config.model_copy(deep=True)
            workers.append(
                Worker(
                    index,
                    config,
                    self.process_run_id,
                    solver_pool=self.solver_pool,
                    locator=PoolLocator(config.pool),
                    backoff=BackoffPolicy.from_config(config.retry),
                )
            )
        return workers

    async def run(self) -> None:
        """Start all workers and wait for them."""
        self.workers = self._create_workers()
        logger.info(
            f"Starting {len(self.workers)} workers for {self.config.username} "
            f"(difficulty {self.config.difficulty}, rig {self.config.rig_identifier}, "
            f"run id {self.process_run_id})"
        )

        self._tasks = [
            asyncio.create_task(worker.run(), name=worker.tag) for worker in self.workers
        ]
        try:
            results = await asyncio.gather(*self._tasks, return_exceptions=True)
            for worker, result in zip(self.workers, results):
                if isinstance(result, Exception):
                    logger.error(f"[{worker.tag}] Exited with error: {result}")
        finally:
            if self._owns_solver_pool:
                self.solver_pool.shutdown()
            logger.info("All workers stopped")

    async def stop(self) -> None:
        """Stop all workers, cancelling any session in progress."""
        logger.info("Stopping workers...")
        for worker in self.workers:
            worker.stop()
        for task in self._tasks:
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


async def run_miner(config: MinerConfig, stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Run the miner.

    Args:
        config: Application configuration.
        stop_event: Optional event to signal shutdown.
    """
    supervisor = Supervisor(config)
    stop_task: Optional[asyncio.Task] = None

    if stop_event:
        async def wait_for_stop():
            await stop_event.wait()
            await supervisor.stop()

        stop_task = asyncio.create_task(wait_for_stop())

    try:
        await supervisor.run()
    finally:
        if stop_task and not stop_task.done():
            stop_task.cancel()
            try:
                await stop_task
            except asyncio.CancelledError:
                pass
