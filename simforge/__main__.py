"""
Entry point for running simforge as a module.

Usage:
    python -m simforge list
    python -m simforge export PRJ_1704067200_001 --output ./configs
    python -m simforge --help
"""

from simforge.app.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
