"""Logging setup."""

from duco_miner.logging.setup import setup_logging

__all__ = ["setup_logging"]
