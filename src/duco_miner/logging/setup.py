"""Loguru sinks for the miner's console and optional log file."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from loguru import logger

if TYPE_CHECKING:
    from duco_miner.config.models import LoggingConfig


def setup_logging(config: LoggingConfig, level: Optional[str] = None) -> List[int]:
    """
    Replace Loguru's default handler with the configured sinks.

    Args:
        config: Logging configuration object.
        level: Level from ``--log-level``; wins over ``config.level``.

    Returns:
        Handler ids of the sinks that were added.
    """
    level = (level or config.level).upper()
    logger.remove()

    # colorize=None lets loguru drop colors when stderr is not a terminal
    handlers = [logger.add(sys.stderr, level=level, format=config.format, colorize=None)]

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logger.add(
                log_path,
                level=level,
                format=config.format,
                rotation=config.rotation,
                retention=config.retention,
                compression="zip",
                encoding="utf-8",
            )
        )

    logger.debug(f"Logging at {level} to stderr" + (f" and {config.file}" if config.file else ""))
    return handlers
