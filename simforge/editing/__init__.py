"""
Prompt editing: state variable tokens and cursor-accurate insertion.
"""

from simforge.editing.splice import SpliceResult, TextArea, insert_at_selection, splice
from simforge.editing.variables import (
    StateNamespace,
    check_references,
    insertable_variables,
    partial_include,
    variable_token,
)

__all__ = [
    "SpliceResult",
    "StateNamespace",
    "TextArea",
    "check_references",
    "insert_at_selection",
    "insertable_variables",
    "partial_include",
    "splice",
    "variable_token",
]
