"""Configuration module for the miner."""

from duco_miner.config.models import (
    LoggingConfig,
    MinerConfig,
    PoolConfig,
    RetryConfig,
    SolverConfig,
)
from duco_miner.config.loader import ConfigError, load_config, validate_config

__all__ = [
    "LoggingConfig",
    "MinerConfig",
    "PoolConfig",
    "RetryConfig",
    "SolverConfig",
    "ConfigError",
    "load_config",
    "validate_config",
]
