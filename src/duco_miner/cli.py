"""Command-line interface for the miner."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from duco_miner import __version__

SAMPLE_CONFIG = """# duco-miner configuration

username: "my_username"           # Pool account name
mining_key: "None"                # Account mining key ("None" if not set)
difficulty: "LOW"                 # LOW, MEDIUM, NET, ...
rig_identifier: "rig-01"          # Label for this machine
thread_count: 4                   # Concurrent workers

pool:
  discovery_url: "https://server.duinocoin.com/getPool"
  discovery_timeout: 10           # Seconds
  static_address: null           # "host:port" to skip discovery
  connect_timeout: 10             # Seconds
  read_timeout: null              # Seconds per line (null waits forever)
  client_name: "DucoAsyncMiner"

retry:
  discovery_delay: 5              # Seconds after a discovery failure
  connect_delay: 3                # Seconds after a connect failure
  session_delay: 2                # Seconds after a lost connection

solver:
  multiplier: 100                 # Search nonces 0..difficulty*multiplier
  use_processes: true             # Solve in a process pool

logging:
  level: "INFO"                   # DEBUG, INFO, WARNING, ERROR
  file: null                      # Log file path (null for console only)
  rotation: "50 MB"
  retention: 10
  format: "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
"""


def find_config_file() -> Optional[Path]:
    """
    Find the configuration file in common locations.

    Returns:
        Path to config file or None.
    """
    search_paths = [
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".config" / "duco-miner" / "config.yaml",
        Path("/etc/duco-miner/config.yaml"),
    ]

    if sys.platform == "win32":
        search_paths.append(
            Path.home() / "AppData" / "Local" / "duco-miner" / "config.yaml"
        )

    for path in search_paths:
        if path.exists():
            return path

    return None


@click.group()
@click.version_option(version=__version__, prog_name="duco-miner")
def main():
    """Multi-worker SHA-1 pool miner."""
    pass


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override log level from config",
)
@click.option(
    "-t",
    "--threads",
    type=click.IntRange(min=1, max=1024),
    default=None,
    help="Override thread_count from config",
)
def start(config_path: Optional[Path], log_level: Optional[str], threads: Optional[int]):
    """Start mining in the foreground."""
    from pydantic import ValidationError

    from duco_miner.config.loader import ConfigError, load_config
    from duco_miner.config.models import MinerConfig
    from duco_miner.daemon import MinerRunner
    from duco_miner.logging.setup import setup_logging

    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            click.echo("Error: No configuration file found", err=True)
            click.echo("Please specify a config file with -c/--config", err=True)
            sys.exit(1)

    click.echo(f"Using configuration: {config_path}")

    try:
        config = load_config(config_path)
        if threads:
            config = MinerConfig.model_validate({**config.model_dump(), "thread_count": threads})
    except (ConfigError, ValidationError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    setup_logging(config.logging, level=log_level)

    try:
        MinerRunner(config).run_foreground()
    except KeyboardInterrupt:
        click.echo("\nShutdown requested...")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
def validate(config_path: Path):
    """Validate a configuration file."""
    from duco_miner.config.loader import load_config, validate_config

    is_valid, message = validate_config(config_path)
    if not is_valid:
        click.echo(f"✗ {message}", err=True)
        sys.exit(1)

    click.echo(f"✓ {message}")
    config = load_config(config_path)
    pool = config.pool.static_address or config.pool.discovery_url
    click.echo(f"\nPool: {pool}")
    click.echo(f"Rig: {config.rig_identifier}")
    click.echo(f"Solver: multiplier {config.solver.multiplier}, "
               f"{'processes' if config.solver.use_processes else 'threads'}")


@main.command()
def init():
    """Create a sample configuration file."""
    dest_path = Path("config.yaml")
    if dest_path.exists():
        if not click.confirm(f"{dest_path} already exists. Overwrite?"):
            click.echo("Skipping config file creation.")
            return

    dest_path.write_text(SAMPLE_CONFIG, encoding="utf-8")
    click.echo(f"Created {dest_path}")
    click.echo("Edit this file to set your username and mining key.")


if __name__ == "__main__":
    main()
