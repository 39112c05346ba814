"""
Cursor-accurate text insertion for prompt editors.

``splice`` is the pure part: replace the selected span of a buffer with a
literal and report where the caret lands. ``insert_at_selection`` is the
editor boundary around it: read the selection from a text target, commit
the new buffer through a callback, then restore focus and caret once the
commit has been applied.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from simforge.utils.logging import get_logger

logger = get_logger("editing.splice")

Scheduler = Callable[[Callable[[], None]], object]


@dataclass(frozen=True)
class SpliceResult:
    new_buffer: str
    new_caret: int


def splice(
    buffer: str,
    selection_start: int,
    selection_end: int,
    literal: str,
) -> SpliceResult:
    """Replace ``buffer[selection_start:selection_end]`` with ``literal``.

    A collapsed selection (start == end) is a plain insertion at the caret.
    The caret ends up directly after the inserted literal.

    Raises:
        ValueError: If the range is not ``0 <= start <= end <= len(buffer)``
    """
    if not 0 <= selection_start <= selection_end <= len(buffer):
        raise ValueError(
            f"Invalid selection {selection_start}..{selection_end} "
            f"for buffer of length {len(buffer)}"
        )
    new_buffer = buffer[:selection_start] + literal + buffer[selection_end:]
    return SpliceResult(new_buffer=new_buffer, new_caret=selection_start + len(literal))


# ============================================================================
# Editor boundary
# ============================================================================


class TextTarget(Protocol):
    """What an editable text control exposes to the inserter."""

    value: str
    selection_start: int
    selection_end: int

    def focus(self) -> None: ...

    def set_selection_range(self, start: int, end: int) -> None: ...


class TextArea:
    """In-memory text control.

    Holds a value, a selection and a focus flag. Used by the CLI and tests
    as the concrete ``TextTarget``.
    """

    def __init__(self, value: str = "", caret: Optional[int] = None):
        self.value = value
        position = len(value) if caret is None else caret
        self.selection_start = position
        self.selection_end = position
        self.focused = False

    def focus(self) -> None:
        self.focused = True

    def blur(self) -> None:
        self.focused = False

    def set_selection_range(self, start: int, end: int) -> None:
        length = len(self.value)
        self.selection_start = max(0, min(start, length))
        self.selection_end = max(self.selection_start, min(end, length))

    def select(self, start: int, end: int) -> None:
        self.set_selection_range(start, end)

    def __repr__(self) -> str:
        return (
            f"TextArea(value={self.value!r}, "
            f"selection=({self.selection_start}, {self.selection_end}))"
        )


def _default_scheduler() -> Scheduler | None:
    try:
        return asyncio.get_running_loop().call_soon
    except RuntimeError:
        return None


def insert_at_selection(
    target: Optional[TextTarget],
    literal: str,
    commit: Callable[[str], None],
    *,
    schedule: Optional[Scheduler] = None,
) -> Optional[SpliceResult]:
    """Insert ``literal`` at the target's selection and hand the result on.

    ``commit`` receives the new buffer and is responsible for storing it
    (which usually re-renders the control with the new value). Restoring
    focus and the caret is scheduled after that, through ``schedule`` or,
    by default, the running event loop's ``call_soon``. Without a running
    loop the caret is restored synchronously, right after ``commit``
    returns; the ordering then holds only because ``commit`` is synchronous
    and has stored the buffer by the time it returns.

    Returns:
        The splice result, or None when there is no target to insert into.
    """
    if target is None:
        logger.debug("No text target, skipping insertion")
        return None

    result = splice(target.value, target.selection_start, target.selection_end, literal)
    commit(result.new_buffer)

    def restore_caret() -> None:
        target.focus()
        target.set_selection_range(result.new_caret, result.new_caret)

    scheduler = schedule or _default_scheduler()
    if scheduler is None:
        restore_caret()
    else:
        scheduler(restore_caret)
    return result
