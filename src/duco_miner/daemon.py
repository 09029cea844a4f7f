"""Foreground process runner with signal-driven shutdown."""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import TYPE_CHECKING, Any, Optional

from loguru import logger

if TYPE_CHECKING:
    from duco_miner.config.models import MinerConfig


class MinerRunner:
    """
    Runs the miner in the foreground until SIGINT/SIGTERM.

    Handles:
    - Creating the asyncio loop
    - Signal handling for graceful shutdown (Unix and Windows)
    """

    def __init__(self, config: MinerConfig):
        self.config = config
        self._stop_event: Optional[asyncio.Event] = None
        self._signal_received = False

    def run_foreground(self) -> None:
        """Run the miner (blocking)."""
        asyncio.run(self._run_main_loop())

    def _setup_signals(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        if sys.platform != "win32":
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, self._request_stop)
            return

        # Windows has no add_signal_handler; set the event from a plain handler
        def sync_signal_handler(signum: int, frame: Any) -> None:
            self._signal_received = True
            try:
                loop.call_soon_threadsafe(self._request_stop)
            except RuntimeError:
                self._stop_event.set()

        signal.signal(signal.SIGINT, sync_signal_handler)
        signal.signal(signal.SIGTERM, sync_signal_handler)
        asyncio.create_task(self._windows_signal_watcher())

    async def _windows_signal_watcher(self) -> None:
        """
        Periodically yield so signal handlers run on Windows.

        Windows only delivers signals while Python executes bytecode, which may
        not happen while every worker is blocked on socket reads.
        """
        while not self._stop_event.is_set():
            if self._signal_received:
                self._request_stop()
                break
            await asyncio.sleep(0.1)

    def _request_stop(self) -> None:
        if not self._stop_event.is_set():
            logger.info("Received shutdown signal")
            self._stop_event.set()

    async def _run_main_loop(self) -> None:
        from duco_miner.client.supervisor import run_miner

        self._stop_event = asyncio.Event()
        self._setup_signals()

        logger.info("Starting miner")
        await run_miner(self.config, self._stop_event)
        logger.info("Miner shutdown complete")
