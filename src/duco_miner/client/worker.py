"""Worker: reconnecting session loop and per-worker share counters."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from loguru import logger

from duco_miner.client.backoff import BackoffPolicy
from duco_miner.client.constants import MAX_LOGGED_LINE_LENGTH, SUMMARY_INTERVAL_SHARES
from duco_miner.client.errors import ErrorKind
from duco_miner.client.locator import PoolLocator
from duco_miner.client.session import PoolSession
from duco_miner.client.solver_pool import SolverPool
from duco_miner.mining.hashrate import format_hashrate
from duco_miner.protocol.messages import Feedback, FeedbackKind, Solution

if TYPE_CHECKING:
    from duco_miner.config.models import MinerConfig


@dataclass
class ShareCounters:
    """Share totals for one worker; kept across reconnects."""

    accepted: int = 0
    rejected: int = 0
    epoch_start: float = field(default_factory=time.monotonic)

    @property
    def total(self) -> int:
        """Total shares with a verdict."""
        return self.accepted + self.rejected

    @property
    def summary_due(self) -> bool:
        """True when the verdict total reaches a multiple of the summary interval."""
        return self.total > 0 and self.total % SUMMARY_INTERVAL_SHARES == 0

    def epoch_seconds(self) -> float:
        """Seconds since the last summary (or since start)."""
        return time.monotonic() - self.epoch_start

    def reset_epoch(self) -> None:
        """Start timing the next summary period."""
        self.epoch_start = time.monotonic()


class Worker:
    """
    Runs pool sessions back to back for one worker slot.

    Each session failure is followed by the backoff delay for its kind, then a
    fresh session is built. Exceptions escaping a session are logged here and
    treated like a lost connection, so one worker never takes down another.
    """

    def __init__(
        self,
        index: int,
        config: MinerConfig,
        process_run_id: int,
        solver_pool: Optional[SolverPool] = None,
        locator: Optional[PoolLocator] = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        """
        Initialize a worker.

        Args:
            index: Worker number, used in log lines.
            config: This worker's copy of the configuration.
            process_run_id: Identifier shared by all workers of this process.
            solver_pool: Executor holder for the solver, shared by all workers.
            locator: Pool address resolver (shared config, no mutable state).
            backoff: Retry delays; built from ``config.retry`` when omitted.
        """
        self.index = index
        self.config = config
        self.process_run_id = process_run_id
        self.tag = f"worker{index}"
        self.counters = ShareCounters()
        self.sessions_started = 0

        self._solver_pool = solver_pool or SolverPool()
        self._locator = locator or PoolLocator(config.pool)
        self._backoff = backoff or BackoffPolicy.from_config(config.retry)
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Ask the worker to exit after its current wait or session."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def new_session(self) -> PoolSession:
        """Build the next session for this worker."""
        return PoolSession(
            self.config,
            self.index,
            self.process_run_id,
            on_share=self.handle_feedback,
            locator=self._locator,
            backoff=self._backoff,
            solver_pool=self._solver_pool,
        )

    async def run(self) -> None:
        """Run sessions until stopped."""
        logger.debug(f"[{self.tag}] Starting (run id {self.process_run_id})")
        while not self.stopped:
            self.sessions_started += 1
            session = self.new_session()
            try:
                error = await session.run()
            except Exception as e:
                logger.exception(f"[{self.tag}] Unexpected error in session: {e}")
                delay = self._backoff.delay_for(ErrorKind.SESSION_IO)
            else:
                delay = self._backoff.delay_for(error.kind)
                if error.kind is ErrorKind.SESSION_IO:
                    logger.warning(f"[{self.tag}] Lost connection ({error.message}), reconnecting...")
                else:
                    logger.error(f"[{self.tag}] {error.message}")
            await self._wait(delay)
        logger.debug(f"[{self.tag}] Stopped")

    async def _wait(self, delay: float) -> None:
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def handle_feedback(self, feedback: Feedback, solution: Solution) -> None:
        """Update counters and report the pool's verdict on a share."""
        counters = self.counters
        if feedback.kind is FeedbackKind.ACCEPTED:
            counters.accepted += 1
            logger.info(
                f"[{self.tag}] Share accepted | {format_hashrate(solution.hashrate)} | "
                f"{counters.accepted}"
            )
        elif feedback.kind is FeedbackKind.REJECTED:
            counters.rejected += 1
            logger.warning(
                f"[{self.tag}] Share rejected: {feedback.reason} (rej={counters.rejected})"
            )
        elif feedback.kind is FeedbackKind.NEW_BLOCK:
            logger.success(f"[{self.tag}] New block found")
            return
        else:
            logger.info(f"[{self.tag}] {feedback.raw[:MAX_LOGGED_LINE_LENGTH]}")
            return

        if counters.summary_due:
            logger.info(
                f"[{self.tag}] Shares: {counters.accepted} good / {counters.rejected} bad | "
                f"Uptime {counters.epoch_seconds():.1f}s"
            )
            counters.reset_epoch()
