"""Failure categories for a pool session."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Why a session ended or a job was dropped."""

    DISCOVERY = "discovery"          # pool address unavailable
    CONNECT = "connect"              # TCP connect to a resolved address failed
    SESSION_IO = "session_io"        # read/write failed mid-protocol
    MALFORMED_JOB = "malformed_job"  # job line without exactly 3 fields
    FIELD_DECODE = "field_decode"    # bad hex/int inside a job line
    SOLVER = "solver"                # solver process pool died mid-job


class SessionError(Exception):
    """A session failure of a specific kind."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"SessionError({self.kind.name}, {self.message!r})"


class PoolLocatorError(Exception):
    """Pool discovery request failed or returned an unexpected body."""

    pass
