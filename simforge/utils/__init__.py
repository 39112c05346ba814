"""
simforge utils - logging and ID generation.
"""

from simforge.utils.logging import setup_logging, get_logger
from simforge.utils.ids import generate_id

__all__ = [
    "setup_logging",
    "get_logger",
    "generate_id",
]
