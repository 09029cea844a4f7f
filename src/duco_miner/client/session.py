"""One pool connection driving the request/solve/submit cycle."""

from __future__ import annotations

import asyncio
import functools
from concurrent.futures.process import BrokenProcessPool
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable, Optional

from loguru import logger

from duco_miner.client.backoff import BackoffPolicy
from duco_miner.client.constants import (
    DISCONNECT_TIMEOUT,
    MAX_LINE_LENGTH,
    MAX_LOGGED_LINE_LENGTH,
)
from duco_miner.client.errors import ErrorKind, PoolLocatorError, SessionError
from duco_miner.client.locator import PoolLocator
from duco_miner.client.solver_pool import SolverPool
from duco_miner.mining.solver import solve
from duco_miner.protocol.codec import (
    JobFormatError,
    build_job_request,
    build_submission,
    classify_feedback,
    decode_line,
    parse_job_line,
)
from duco_miner.protocol.messages import Feedback, Job, Solution

if TYPE_CHECKING:
    from duco_miner.config.models import MinerConfig


class SessionState(Enum):
    """Protocol states of a pool session."""

    DISCONNECTED = auto()
    CONNECTING = auto()
    HANDSHAKING = auto()
    REQUESTING_JOB = auto()
    AWAITING_JOB = auto()
    SOLVING = auto()
    SUBMITTING = auto()
    AWAITING_FEEDBACK = auto()


ShareCallback = Callable[[Feedback, Solution], None]


def _clip(text: str) -> str:
    if len(text) > MAX_LOGGED_LINE_LENGTH:
        return text[:MAX_LOGGED_LINE_LENGTH] + "..."
    return text


class PoolSession:
    """
    A single connection to a pool node.

    Handles:
    - Resolving the pool address and opening the TCP stream
    - Reading the server version banner
    - Requesting, parsing and solving jobs
    - Submitting shares and classifying the pool's verdict

    A session is used once. Any discovery, connect or I/O failure ends it and
    ``run()`` returns the SessionError describing why; the owning Worker
    decides how long to wait before building a new one.

    Lines that do not split into three job fields are dropped and a new job
    is requested immediately on the same connection. A pool that only ever
    sends such lines keeps the session in that loop.
    """

    def __init__(
        self,
        config: MinerConfig,
        index: int,
        process_run_id: int,
        on_share: ShareCallback,
        locator: Optional[PoolLocator] = None,
        backoff: Optional[BackoffPolicy] = None,
        solver_pool: Optional[SolverPool] = None,
    ):
        """
        Initialize a session.

        Args:
            config: Miner configuration (this worker's copy).
            index: Worker index, used in log lines.
            process_run_id: Identifier shared by all workers of this process.
            on_share: Called with the pool's feedback for every submitted share.
            locator: Pool address resolver.
            backoff: Delay policy (only the malformed-job delay is used here).
            solver_pool: Executor holder for the solver; None uses the loop default.
        """
        self.config = config
        self.index = index
        self.process_run_id = process_run_id
        self._on_share = on_share
        self._locator = locator or PoolLocator(config.pool)
        self._backoff = backoff or BackoffPolicy.from_config(config.retry)
        self._solver_pool = solver_pool or SolverPool()

        self.tag = f"worker{index}"
        self._state = SessionState.DISCONNECTED
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

        self.jobs_received = 0
        self.shares_submitted = 0

    @property
    def state(self) -> SessionState:
        """Current protocol state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Check if the TCP stream is open."""
        return self._writer is not None

    async def run(self) -> SessionError:
        """
        Drive the session until it fails.

        Returns:
            The error that ended the session.
        """
        try:
            await self._connect()
            await self._handshake()
            while True:
                await self._cycle()
        except SessionError as e:
            return e
        finally:
            await self._close()

    async def _connect(self) -> None:
        self._state = SessionState.DISCONNECTED
        try:
            pool = await self._locator.locate()
        except PoolLocatorError as e:
            raise SessionError(ErrorKind.DISCOVERY, f"Pool discovery failed: {e}") from e

        self._state = SessionState.CONNECTING
        logger.info(f"[{self.tag}] Connecting to {pool.address}")
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(pool.ip, pool.port, limit=MAX_LINE_LENGTH),
                timeout=self.config.pool.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SessionError(
                ErrorKind.CONNECT, f"Connection to {pool.address} timed out"
            ) from e
        except OSError as e:
            raise SessionError(
                ErrorKind.CONNECT, f"Connection to {pool.address} failed: {e}"
            ) from e

    async def _handshake(self) -> None:
        self._state = SessionState.HANDSHAKING
        try:
            banner = await self._read_line("server version")
        except SessionError as e:
            # A missing banner does not end the session; later reads will
            logger.warning(f"[{self.tag}] No server version received: {e.message}")
            return
        logger.info(f"[{self.tag}] Connected (server v{_clip(banner)})")

    async def _cycle(self) -> None:
        """Run one request -> solve -> submit -> feedback round."""
        self._state = SessionState.REQUESTING_JOB
        await self._write(
            build_job_request(
                self.config.username, self.config.difficulty, self.config.mining_key
            ),
            "job request",
        )

        self._state = SessionState.AWAITING_JOB
        line = await self._read_line("job")
        try:
            job = parse_job_line(line)
        except JobFormatError as e:
            logger.debug(
                f"[{self.tag}] Dropping job line ({ErrorKind.MALFORMED_JOB.value}): "
                f"{e}: {_clip(line)!r}"
            )
            await asyncio.sleep(self._backoff.delay_for(ErrorKind.MALFORMED_JOB))
            return
        self.jobs_received += 1
        if not job.target or not job.difficulty:
            logger.debug(
                f"[{self.tag}] Job fields defaulted ({ErrorKind.FIELD_DECODE.value}): "
                f"{_clip(line)!r}"
            )

        self._state = SessionState.SOLVING
        solution = await self._solve(job)
        if solution is None:
            logger.debug(f"[{self.tag}] No nonce found for job {job.base!r}, skipping")
            return

        self._state = SessionState.SUBMITTING
        await self._write(
            build_submission(
                solution,
                self.config.pool.client_name,
                self.config.rig_identifier,
                self.process_run_id,
            ),
            "share",
        )
        self.shares_submitted += 1

        self._state = SessionState.AWAITING_FEEDBACK
        feedback = classify_feedback(await self._read_line("share feedback"))
        self._on_share(feedback, solution)

    async def _solve(self, job: Job) -> Optional[Solution]:
        """
        Run the search off the event loop.

        Raises:
            SessionError: If a solver process died and took its pool down.
        """
        loop = asyncio.get_running_loop()
        executor = self._solver_pool.executor
        try:
            return await loop.run_in_executor(
                executor,
                functools.partial(solve, job, self.config.solver.multiplier),
            )
        except BrokenProcessPool as e:
            self._solver_pool.replace(executor)
            raise SessionError(ErrorKind.SOLVER, f"Solver pool broken: {e}") from e

    async def _read_line(self, what: str) -> str:
        """
        Read one newline-terminated line.

        Raises:
            SessionError: On timeout, transport error or end of stream.
        """
        if self._reader is None:
            raise SessionError(ErrorKind.SESSION_IO, f"Not connected while reading {what}")
        try:
            if self.config.pool.read_timeout:
                data = await asyncio.wait_for(
                    self._reader.readline(), timeout=self.config.pool.read_timeout
                )
            else:
                data = await self._reader.readline()
        except asyncio.TimeoutError as e:
            raise SessionError(
                ErrorKind.SESSION_IO,
                f"Timed out after {self.config.pool.read_timeout}s waiting for {what}",
            ) from e
        except (OSError, ValueError) as e:
            # ValueError: line longer than the stream limit
            raise SessionError(ErrorKind.SESSION_IO, f"Error reading {what}: {e}") from e

        if not data:
            raise SessionError(ErrorKind.SESSION_IO, f"Pool closed the connection before {what}")
        return decode_line(data)

    async def _write(self, data: bytes, what: str) -> None:
        if self._writer is None:
            raise SessionError(ErrorKind.SESSION_IO, f"Not connected while sending {what}")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise SessionError(ErrorKind.SESSION_IO, f"Error sending {what}: {e}") from e

    async def _close(self) -> None:
        self._state = SessionState.DISCONNECTED
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        try:
            writer.close()
            await asyncio.wait_for(writer.wait_closed(), timeout=DISCONNECT_TIMEOUT)
        except asyncio.TimeoutError:
            logger.debug(f"[{self.tag}] Timeout waiting for socket to close")
        except OSError as e:
            logger.debug(f"[{self.tag}] Error closing connection: {e}")
