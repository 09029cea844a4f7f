"""Pool discovery over HTTP."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import aiohttp
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from duco_miner.client.errors import PoolLocatorError

if TYPE_CHECKING:
    from duco_miner.config.models import PoolConfig


class PoolAddress(BaseModel):
    """Discovery response body: ``{"ip": ..., "port": ...}``."""

    ip: str = Field(..., min_length=1)
    port: int = Field(..., ge=1, le=65535)

    @property
    def address(self) -> str:
        """Get ip:port string."""
        return f"{self.ip}:{self.port}"

    @classmethod
    def parse(cls, address: str) -> "PoolAddress":
        """Build from a ``host:port`` string."""
        host, _, port = address.rpartition(":")
        return cls(ip=host, port=int(port))


class PoolLocator:
    """
    Resolves the address of a pool node to connect to.

    Uses the configured static address when present, otherwise asks the
    discovery endpoint. Every failure surfaces as PoolLocatorError.
    """

    def __init__(self, config: PoolConfig):
        self.config = config

    async def locate(self) -> PoolAddress:
        """
        Resolve a pool address.

        Raises:
            PoolLocatorError: If discovery fails or the response is malformed.
        """
        if self.config.static_address:
            return PoolAddress.parse(self.config.static_address)

        body = await self._fetch()
        try:
            pool = PoolAddress.model_validate(body)
        except ValidationError as e:
            raise PoolLocatorError(f"Unexpected discovery response {body!r}: {e}") from e
        logger.debug(f"Discovered pool node {pool.address}")
        return pool

    async def _fetch(self) -> object:
        timeout = aiohttp.ClientTimeout(total=self.config.discovery_timeout)
        url = self.config.discovery_url
        try:
            async with aiohttp.ClientSession(timeout=timeout) as http:
                async with http.get(url) as resp:
                    if resp.status != 200:
                        raise PoolLocatorError(f"GET {url} returned HTTP {resp.status}")
                    # Accept any Content-Type
                    return await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise PoolLocatorError(f"GET {url} timed out") from e
        except aiohttp.ClientError as e:
            raise PoolLocatorError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise PoolLocatorError(f"Invalid JSON from {url}: {e}") from e
