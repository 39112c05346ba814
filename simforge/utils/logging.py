"""
Logging configuration for simforge.

Colored level names on stderr, one log file under the data directory, and
helpers that format operation details the same way across the exporter and
the project library.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

ROOT_LOGGER = "simforge"
LOG_FILENAME = "simforge.log"


# ============================================================================
# Formatter
# ============================================================================


class SimforgeFormatter(logging.Formatter):
    """Single-line formatter: timestamp, level, short logger name, message."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%d %H:%M:%S")

        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.COLORS['RESET']}"

        # "simforge.export.compiler" -> "export.compiler"
        name = record.name.removeprefix(f"{ROOT_LOGGER}.")

        line = f"[{timestamp}] {level} [{name:20}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line} {self.formatException(record.exc_info)}"
        return line


# ============================================================================
# Setup
# ============================================================================


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
) -> Path | None:
    """Configure the ``simforge`` logger hierarchy.

    Args:
        level: Minimum log level to capture
        log_dir: Directory for ``simforge.log``; no file is written without it
        console_output: Whether to log to stderr

    Returns:
        Path of the log file, if one was configured
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers = []
    # Records still reach the root logger (pytest's caplog listens there).
    root_logger.propagate = True

    if console_output:
        # stderr keeps compiled configuration on stdout clean for piping
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(SimforgeFormatter(use_colors=sys.stderr.isatty()))
        root_logger.addHandler(console_handler)

    if log_dir is None:
        return None

    log_path = Path(log_dir) / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(SimforgeFormatter(use_colors=False))
    root_logger.addHandler(file_handler)
    return log_path


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``simforge`` namespace.

    Usage:
        logger = get_logger("export.compiler")
        logger.info("Compiled configuration")
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


# ============================================================================
# Convenience Functions
# ============================================================================


def _format_details(details: dict[str, Any]) -> str:
    return ", ".join(f"{k}={v}" for k, v in details.items())


def log_operation(
    logger: logging.Logger,
    operation: str,
    details: dict[str, Any] | None = None,
) -> None:
    """Log a completed operation at info level."""
    if details:
        logger.info(f"{operation}: {_format_details(details)}")
    else:
        logger.info(operation)


def log_error(
    logger: logging.Logger,
    operation: str,
    error: BaseException,
    context: dict[str, Any] | None = None,
) -> None:
    """Log a failed operation with its exception and context.

    Args:
        logger: Logger to use
        operation: Name of the failed operation
        error: The exception
        context: Optional context dict
    """
    msg = f"FAILED {operation}: {type(error).__name__}: {error}"
    if context:
        msg = f"{msg} | Context: {_format_details(context)}"
    logger.error(msg, exc_info=error)
