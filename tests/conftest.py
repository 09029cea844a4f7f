"""Shared fixtures: config factory, log capture and an in-process fake pool."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest
from loguru import logger

from duco_miner.config.models import MinerConfig


def _merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@pytest.fixture
def make_config():
    """Build a MinerConfig with test-friendly defaults."""

    def _make(**overrides) -> MinerConfig:
        data = {
            "username": "tester",
            "mining_key": "secret",
            "difficulty": "LOW",
            "rig_identifier": "rig-a",
            "thread_count": 2,
            "pool": {"connect_timeout": 2},
            "retry": {"discovery_delay": 0, "connect_delay": 0, "session_delay": 0},
            "solver": {"use_processes": False},
        }
        return MinerConfig.model_validate(_merge(data, overrides))

    return _make


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class FakePool:
    """
    Scripted line-protocol pool server.

    Answers each ``JOB,...`` request with the next queued job line and each
    submission with the next queued feedback line (``GOOD`` when none are
    queued). Closes the connection once the job queue is empty.
    """

    def __init__(self, jobs: List[str], feedback: Optional[List[str]] = None,
                 banner: Optional[str] = "3.0"):
        self.jobs = list(jobs)
        self.feedback = list(feedback or [])
        self.banner = banner
        self.requests: List[str] = []
        self.submissions: List[str] = []
        self.connections = 0
        self._server: Optional[asyncio.AbstractServer] = None

    async def start(self) -> str:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        host, port = self._server.sockets[0].getsockname()[:2]
        return f"{host}:{port}"

    async def close(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        try:
            if self.banner is not None:
                writer.write(f"{self.banner}\n".encode())
                await writer.drain()
            while True:
                data = await reader.readline()
                if not data:
                    break
                line = data.decode().strip()
                if line.startswith("JOB,"):
                    self.requests.append(line)
                    if not self.jobs:
                        break
                    writer.write(f"{self.jobs.pop(0)}\n".encode())
                else:
                    self.submissions.append(line)
                    reply = self.feedback.pop(0) if self.feedback else "GOOD"
                    writer.write(f"{reply}\n".encode())
                await writer.drain()
        finally:
            writer.close()


@pytest.fixture
async def fake_pool():
    """Factory fixture that starts FakePool servers and closes them afterwards."""
    pools: List[FakePool] = []

    async def _start(jobs: List[str], **kwargs) -> tuple[FakePool, str]:
        pool = FakePool(jobs, **kwargs)
        address = await pool.start()
        pools.append(pool)
        return pool, address

    yield _start

    for pool in pools:
        await pool.close()
