"""
Project Model for simforge.

Defines the Project (the editable simulation definition), its agent roles,
prompt partials, state schema and phase manager variants, plus the
ServerConfig that identifies where an exported configuration will run.

Every model accepts both snake_case field names and the camelCase keys the
browser editor writes (``roleId``, ``numberOfAgents``, ...), so project JSON
exported from the editor validates unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


# ============================================================================
# State Schema
# ============================================================================


class StateField(_Model):
    """A declared state variable.

    Attributes:
        name: Field name, unique within its namespace
        type: Type name understood by the runner (int, float, str, list, ...)
        default: Optional default value, emitted verbatim
    """

    name: str = Field(min_length=1)
    type: str = Field(default="str")
    default: Any = None


class State(_Model):
    """Shared state schema split into three namespaces.

    ``meta_information`` is runner bookkeeping (game id, phase),
    ``public_information`` is visible to every agent, and
    ``private_information`` is per-agent.
    """

    meta_information: list[StateField] = Field(default_factory=list)
    public_information: list[StateField] = Field(default_factory=list)
    private_information: list[StateField] = Field(default_factory=list)


def default_state() -> State:
    """State schema seeded for a brand-new project."""
    return State(
        meta_information=[
            StateField(name="game_id", type="int", default=0),
            StateField(name="phase", type="int", default=0),
        ],
    )


# ============================================================================
# Prompts and Roles
# ============================================================================


class PromptPartial(_Model):
    """A named, reusable block of prompt text."""

    id: str
    name: str = Field(min_length=1)
    content: str = ""


class AgentRole(_Model):
    """A role that one or more agents play in the simulation.

    Attributes:
        role_id: Project-unique, stable integer id
        name: Display name
        llm_type: LLM client class the runner instantiates
        llm_params: Opaque parameters forwarded to the LLM client
        number_of_agents: How many agents play this role
        prompts: Prompt slot name (``system``, ``user``,
            ``system_phase_<n>``, ...) to raw prompt text
        task_phases: Phases in which this role acts, if restricted
    """

    role_id: int = Field(ge=0)
    name: str
    llm_type: str = "ChatOpenAI"
    llm_params: dict[str, Any] = Field(default_factory=dict)
    number_of_agents: int = Field(default=1, ge=0)
    prompts: dict[str, str] = Field(default_factory=dict)
    task_phases: Optional[list[int]] = None


# ============================================================================
# Managers
# ============================================================================


class TurnBasedPhaseManager(_Model):
    """Phases advance only when every agent has acted."""

    type: Literal["TurnBasedPhaseManager"] = "TurnBasedPhaseManager"


class HybridPhaseManager(_Model):
    """Turn-based phases mixed with continuous, delay-paced phases.

    ``min_action_delay <= max_action_delay`` is expected but not checked.
    """

    type: Literal["HybridPhaseManager"] = "HybridPhaseManager"
    continuous_phases: list[int] = Field(default_factory=list)
    max_action_delay: Union[int, float] = Field(default=10, ge=0)
    min_action_delay: Union[int, float] = Field(default=5, ge=0)


ManagerConfig = Annotated[
    Union[TurnBasedPhaseManager, HybridPhaseManager],
    Field(discriminator="type"),
]


# ============================================================================
# Server
# ============================================================================


class ServerConfig(_Model):
    """Execution target embedded in the runner section."""

    id: Optional[str] = None
    name: Optional[str] = None
    hostname: str = "localhost"
    port: int = Field(default=8765, ge=0, le=65535)
    path: str = "wss"


# ============================================================================
# Project
# ============================================================================


class ProjectSummary(_Model):
    """The slice of a project the project list shows."""

    id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class Project(_Model):
    """Editable definition of a multi-agent simulation."""

    id: Optional[str] = None
    created_at: Optional[datetime] = None

    name: str
    description: Optional[str] = None
    game_id: Optional[int] = None

    prompt_partials: list[PromptPartial] = Field(default_factory=list)
    agent_roles: list[AgentRole] = Field(default_factory=list)
    state: State = Field(default_factory=State)
    manager: ManagerConfig = Field(default_factory=TurnBasedPhaseManager)

    logs_dir: Optional[str] = "logs"
    log_level: Optional[str] = "INFO"

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Project name must not be empty")
        return value

    @model_validator(mode="after")
    def _check_unique_keys(self) -> "Project":
        partial_names = [p.name for p in self.prompt_partials]
        duplicates = sorted({n for n in partial_names if partial_names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate prompt partial names: {', '.join(duplicates)}")

        role_ids = [r.role_id for r in self.agent_roles]
        duplicate_ids = sorted({i for i in role_ids if role_ids.count(i) > 1})
        if duplicate_ids:
            raise ValueError(
                f"Duplicate role ids: {', '.join(str(i) for i in duplicate_ids)}"
            )
        return self

    def summary(self) -> ProjectSummary:
        if self.id is None:
            raise ValueError("Project has not been materialized (no id)")
        return ProjectSummary(
            id=self.id,
            name=self.name,
            description=self.description,
            created_at=self.created_at,
        )

    def to_json(self) -> str:
        """Serialize to the editor's camelCase JSON."""
        return self.model_dump_json(indent=2, by_alias=True)

    @classmethod
    def from_json(cls, json_str: str) -> "Project":
        return cls.model_validate_json(json_str)
