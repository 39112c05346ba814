"""
ID generation utilities for simforge.

Identifiers are only minted when a new project or partial is created,
never while compiling, so exports stay deterministic.
"""

from __future__ import annotations

import threading
import time
import uuid


class _ThreadSafeCounter:
    """Thread-safe incrementing counter."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


_counter = _ThreadSafeCounter()


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier.

    Format: {prefix}_{timestamp}_{counter}

    Example:
        >>> generate_id("PRJ")
        "PRJ_1704067200_001"
    """
    timestamp = int(time.time())
    count = _counter.next()

    if prefix:
        return f"{prefix}_{timestamp}_{count:03d}"
    return f"{timestamp}_{count:03d}"


def generate_project_id() -> str:
    """Generate an ID for a new project."""
    return generate_id("PRJ")


def generate_partial_id() -> str:
    """Partials are keyed by UUID, like the browser editor does."""
    return str(uuid.uuid4())


def next_role_id(existing: list[int]) -> int:
    """Role ids are small integers: one past the largest in use."""
    return max(existing, default=0) + 1

