"""Read miner settings from a YAML file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from duco_miner.config.models import MinerConfig


class ConfigError(Exception):
    """Configuration error."""

    pass


def _read_text(path: Path) -> str:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    if not path.is_file():
        raise ConfigError(f"Configuration path is not a file: {path}")
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file: {e}") from e
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(
            f"Configuration file is not valid UTF-8 (byte {e.start}): {path}"
        ) from e


def _parse_mapping(text: str) -> dict[str, Any]:
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e
    if document is None:
        raise ConfigError("Configuration file is empty")
    if not isinstance(document, dict):
        raise ConfigError(
            f"Configuration file must contain a YAML mapping (dict), "
            f"got {type(document).__name__}"
        )
    return document


def _describe(error: ValidationError) -> str:
    lines = [
        f"  - {'.'.join(str(part) for part in item['loc']) or '<root>'}: {item['msg']}"
        for item in error.errors()
    ]
    return "Configuration validation failed:\n" + "\n".join(lines)


def load_config(path: Union[str, Path]) -> MinerConfig:
    """
    Load and validate configuration from a YAML file.

    Every failure, from a missing file through bad encoding to a rejected
    field, surfaces as ConfigError.

    Raises:
        ConfigError: If the file cannot be used as a miner configuration.
    """
    document = _parse_mapping(_read_text(Path(path)))
    try:
        return MinerConfig.model_validate(document)
    except ValidationError as e:
        raise ConfigError(_describe(e)) from e


def validate_config(path: Union[str, Path]) -> tuple[bool, str]:
    """Check a configuration file, returning (is_valid, message)."""
    try:
        config = load_config(path)
    except ConfigError as e:
        return False, str(e)
    return (
        True,
        f"Configuration valid: user {config.username}, {config.thread_count} workers, "
        f"difficulty {config.difficulty}",
    )
