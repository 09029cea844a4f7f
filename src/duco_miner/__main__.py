"""Allow running as ``python -m duco_miner``."""

from duco_miner.cli import main

if __name__ == "__main__":
    main()
