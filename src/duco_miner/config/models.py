"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _check_protocol_field(v: str, what: str) -> str:
    """
    Reject values that would corrupt a comma-separated protocol line.

    Identity, credential, difficulty and rig values are embedded verbatim in
    ``JOB,...`` requests and share submissions, so a comma or line break would
    shift every following field.
    """
    for char in v:
        if char == ",":
            raise ValueError(f"{what} cannot contain commas")
        if ord(char) < 32:
            raise ValueError(
                f"{what} cannot contain control characters (found \\x{ord(char):02x})"
            )
    if len(v) > 256:
        raise ValueError(f"{what} must be 256 characters or less")
    return v


class PoolConfig(BaseModel):
    """Pool discovery and connection settings."""

    model_config = ConfigDict(frozen=True)

    discovery_url: str = Field(
        default="https://server.duinocoin.com/getPool",
        description="HTTP endpoint returning {ip, port} of a pool node",
    )
    discovery_timeout: float = Field(default=10, gt=0, description="Discovery request timeout in seconds")
    static_address: Optional[str] = Field(
        default=None, description="Fixed host:port, skips discovery when set"
    )
    connect_timeout: float = Field(default=10, gt=0, description="TCP connect timeout in seconds")
    # None blocks until the transport itself reports an error
    read_timeout: Optional[float] = Field(default=None, gt=0, description="Per-line read timeout in seconds")
    client_name: str = Field(default="DucoAsyncMiner", description="Miner name sent with each share")

    @field_validator("static_address")
    @classmethod
    def validate_static_address(cls, v: Optional[str]) -> Optional[str]:
        """Validate host:port form."""
        if v is None:
            return v
        v = v.strip()
        host, sep, port = v.rpartition(":")
        if not sep or not host:
            raise ValueError(f"static_address must be host:port, got '{v}'")
        try:
            port_num = int(port)
        except ValueError:
            raise ValueError(f"Invalid port '{port}' in static_address")
        if not (1 <= port_num <= 65535):
            raise ValueError(f"Port {port_num} in static_address must be 1-65535")
        return v

    @field_validator("client_name")
    @classmethod
    def validate_client_name(cls, v: str) -> str:
        return _check_protocol_field(v, "client_name")


class RetryConfig(BaseModel):
    """Fixed delays (seconds) before rebuilding a failed session."""

    model_config = ConfigDict(frozen=True)

    discovery_delay: float = Field(default=5, ge=0, description="Delay after a pool discovery failure")
    connect_delay: float = Field(default=3, ge=0, description="Delay after a TCP connect failure")
    session_delay: float = Field(default=2, ge=0, description="Delay after losing an established session")


class SolverConfig(BaseModel):
    """Job search settings."""

    model_config = ConfigDict(frozen=True)

    # Highest nonce tried is difficulty * multiplier
    multiplier: int = Field(default=100, ge=1, description="Search bound multiplier")
    use_processes: bool = Field(
        default=True, description="Solve in a process pool instead of the default thread pool"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO", description="Log level")
    file: Optional[str] = Field(default=None, description="Log file path")
    rotation: str = Field(default="50 MB", description="Log rotation size")
    retention: int = Field(default=10, ge=1, description="Number of rotated files to keep")
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        description="Log message format",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper


class MinerConfig(BaseModel):
    """Main configuration model."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(..., min_length=1, description="Pool account name")
    mining_key: str = Field(default="None", description="Account mining key")
    difficulty: str = Field(default="LOW", min_length=1, description="Requested difficulty tier")
    rig_identifier: str = Field(default="None", description="Label for this machine")
    thread_count: int = Field(default=1, ge=1, le=1024, description="Number of concurrent workers")

    pool: PoolConfig = Field(default_factory=PoolConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("username", "mining_key", "rig_identifier")
    @classmethod
    def validate_protocol_strings(cls, v: str, info) -> str:
        """Validate strings that are sent inside protocol lines."""
        return _check_protocol_field(v, info.field_name)

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, v: str) -> str:
        """Strip surrounding whitespace; the tier name is sent as written."""
        return _check_protocol_field(v.strip(), "difficulty")
