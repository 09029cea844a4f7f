"""Asyncio multi-worker client for line-protocol SHA-1 mining pools."""

__version__ = "0.1.0"
