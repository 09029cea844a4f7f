"""Retry delays keyed by failure category."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from duco_miner.client.errors import ErrorKind

if TYPE_CHECKING:
    from duco_miner.config.models import RetryConfig


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Fixed delay (seconds) to wait after each kind of failure.

    Malformed jobs are re-requested immediately. A broken solver pool waits
    as long as a lost connection.
    """

    discovery: float = 5.0
    connect: float = 3.0
    session_io: float = 2.0
    malformed_job: float = 0.0

    @classmethod
    def from_config(cls, config: RetryConfig) -> "BackoffPolicy":
        return cls(
            discovery=config.discovery_delay,
            connect=config.connect_delay,
            session_io=config.session_delay,
        )

    def delay_for(self, kind: ErrorKind) -> float:
        """Return the delay before retrying after ``kind``."""
        if kind is ErrorKind.DISCOVERY:
            return self.discovery
        if kind is ErrorKind.CONNECT:
            return self.connect
        if kind in (ErrorKind.SESSION_IO, ErrorKind.SOLVER):
            return self.session_io
        if kind is ErrorKind.MALFORMED_JOB:
            return self.malformed_job
        return 0.0
