"""
Prompt editing for agent roles and prompt partials.

Updates are immutable: every change produces new model instances and hands
the full updated list to an ``on_change`` callback, the way the project
forms report edits upward.
"""

from __future__ import annotations

from typing import Any, Callable, Literal, Optional

from simforge.core.models.project import AgentRole, PromptPartial
from simforge.editing.splice import Scheduler, SpliceResult, TextTarget, insert_at_selection
from simforge.utils.logging import get_logger

logger = get_logger("editing.prompts")

PromptKind = Literal["system", "user"]


def prompt_slot(kind: PromptKind, phase: Optional[int] = None) -> str:
    """Name of a prompt slot: ``system``, ``user`` or ``system_phase_2``."""
    if kind not in ("system", "user"):
        raise ValueError(f"Unknown prompt kind: {kind}")
    if phase is None:
        return kind
    return f"{kind}_phase_{phase}"


def update_role_prompt(
    roles: list[AgentRole],
    role_id: int,
    slot: str,
    text: str,
) -> list[AgentRole]:
    """Return a copy of ``roles`` with one prompt slot replaced.

    Raises:
        KeyError: If no role has ``role_id``
    """
    if not any(role.role_id == role_id for role in roles):
        raise KeyError(f"No agent role with id {role_id}")
    return [
        AgentRole.model_validate({**role.model_dump(), "prompts": {**role.prompts, slot: text}})
        if role.role_id == role_id
        else role
        for role in roles
    ]


def update_partial(
    partials: list[PromptPartial],
    partial_id: str,
    **changes: Any,
) -> list[PromptPartial]:
    """Return a copy of ``partials`` with one partial's fields changed.

    Raises:
        KeyError: If no partial has ``partial_id``
        ValueError: If the new name is taken by another partial
        pydantic.ValidationError: If the changed partial is invalid
    """
    current = next((p for p in partials if p.id == partial_id), None)
    if current is None:
        raise KeyError(f"No prompt partial with id {partial_id}")

    updated = PromptPartial.model_validate({**current.model_dump(), **changes})
    if any(p.name == updated.name for p in partials if p.id != partial_id):
        raise ValueError(f"Prompt partial name already in use: {updated.name}")
    return [updated if partial.id == partial_id else partial for partial in partials]


class PromptEditor:
    """Edits the prompt slots of a project's agent roles.

    Usage:
        editor = PromptEditor(project.agent_roles, on_change=store)
        editor.insert(1, "system", textarea, "{{ meta.round }}")
    """

    def __init__(
        self,
        roles: list[AgentRole],
        on_change: Callable[[list[AgentRole]], None],
        schedule: Optional[Scheduler] = None,
    ):
        self.roles = list(roles)
        self._on_change = on_change
        self._schedule = schedule

    def set_prompt(self, role_id: int, slot: str, text: str) -> None:
        self.roles = update_role_prompt(self.roles, role_id, slot, text)
        self._on_change(self.roles)

    def insert(
        self,
        role_id: int,
        slot: str,
        target: Optional[TextTarget],
        literal: str,
    ) -> Optional[SpliceResult]:
        """Insert text (a variable token or anything else) into a slot."""

        def commit(new_text: str) -> None:
            self.set_prompt(role_id, slot, new_text)
            target.value = new_text

        return insert_at_selection(target, literal, commit, schedule=self._schedule)


class PartialEditor:
    """Edits prompt partial names and content."""

    def __init__(
        self,
        partials: list[PromptPartial],
        on_change: Callable[[list[PromptPartial]], None],
        schedule: Optional[Scheduler] = None,
    ):
        self.partials = list(partials)
        self._on_change = on_change
        self._schedule = schedule

    def update(self, partial_id: str, **changes: Any) -> None:
        self.partials = update_partial(self.partials, partial_id, **changes)
        self._on_change(self.partials)

    def delete(self, partial_id: str) -> None:
        self.partials = [p for p in self.partials if p.id != partial_id]
        self._on_change(self.partials)

    def insert(
        self,
        partial_id: str,
        target: Optional[TextTarget],
        literal: str,
    ) -> Optional[SpliceResult]:
        def commit(new_content: str) -> None:
            self.update(partial_id, content=new_content)
            target.value = new_content

        return insert_at_selection(target, literal, commit, schedule=self._schedule)
