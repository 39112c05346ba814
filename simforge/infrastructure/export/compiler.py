"""
Configuration compiler.

Turns a Project and the ServerConfig it will run against into the YAML
document the simulation runner loads. Output is a pure function of those
two inputs: same project, same bytes.

Top-level emission order:

    name, description, game_id
    prompt_partials
    agent_roles
    agents          (derived from number_of_agents)
    state
    manager
    runner          (paired runner type, server, logging, manager extras)

Keys whose value is missing or an empty collection are left out.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable

from simforge.core.models.project import (
    AgentRole,
    HybridPhaseManager,
    Project,
    ServerConfig,
    State,
    TurnBasedPhaseManager,
)
from simforge.infrastructure.export.yaml_writer import BlockStr, FlowList, dump_config
from simforge.utils.logging import get_logger

logger = get_logger("export.compiler")

CONFIG_SUFFIX = "_config.yaml"


# ============================================================================
# Manager / Runner resolution
# ============================================================================


@dataclass(frozen=True)
class RunnerResolution:
    """Manager section plus the runner fields that depend on the manager."""

    manager_block: dict[str, Any] = field(default_factory=dict)
    runner_block: dict[str, Any] = field(default_factory=dict)

    @property
    def runner_type(self) -> str:
        return self.runner_block["type"]


def _turn_based_extras(manager: TurnBasedPhaseManager) -> dict[str, Any]:
    return {}


def _hybrid_extras(manager: HybridPhaseManager) -> dict[str, Any]:
    return {
        "continuous_phases": FlowList(manager.continuous_phases),
        "max_action_delay": manager.max_action_delay,
        "min_action_delay": manager.min_action_delay,
    }


# Every manager variant must appear here; see resolve_runner.
RUNNERS: dict[type, tuple[str, Callable[[Any], dict[str, Any]]]] = {
    TurnBasedPhaseManager: ("TurnBasedGameRunner", _turn_based_extras),
    HybridPhaseManager: ("HybridGameRunner", _hybrid_extras),
}


def resolve_runner(manager: TurnBasedPhaseManager | HybridPhaseManager) -> RunnerResolution:
    """Pair a manager with its runner and collect the runner extras.

    Raises:
        TypeError: If the manager variant has no registered runner
    """
    try:
        runner_type, extras = RUNNERS[type(manager)]
    except KeyError:
        raise TypeError(
            f"No runner registered for manager {type(manager).__name__}"
        ) from None

    return RunnerResolution(
        manager_block={"type": manager.type},
        runner_block={"type": runner_type, **extras(manager)},
    )


# ============================================================================
# Agent pool
# ============================================================================


def expand_agents(roles: list[AgentRole]) -> list[dict[str, int]]:
    """Number every agent across all roles, starting at 1.

    The counter runs on from one role into the next and a role with zero
    agents contributes nothing.

    Example:
        roles with 2 and 1 agents -> [{"id": 1}, {"id": 2}, {"id": 3}]
    """
    agents: list[dict[str, int]] = []
    next_id = 1
    for role in roles:
        for _ in range(role.number_of_agents):
            agents.append({"id": next_id})
            next_id += 1
    return agents


# ============================================================================
# Sections
# ============================================================================


_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")


def snake_case(key: str) -> str:
    """``modelName`` -> ``model_name``; snake_case keys pass through."""
    key = _ACRONYM_BOUNDARY.sub(r"\1_\2", key)
    key = _CAMEL_BOUNDARY.sub(r"\1_\2", key)
    return key.lower()


def _role_section(role: AgentRole) -> dict[str, Any]:
    section: dict[str, Any] = {
        "role_id": role.role_id,
        "name": role.name,
        "llm_type": role.llm_type,
    }
    if role.llm_params:
        section["llm_params"] = {
            snake_case(key): value for key, value in role.llm_params.items()
        }
    section["number_of_agents"] = role.number_of_agents
    if role.prompts:
        section["prompts"] = {
            slot: BlockStr(text) for slot, text in role.prompts.items()
        }
    if role.task_phases:
        section["task_phases"] = FlowList(role.task_phases)
    return section


def _state_section(state: State) -> dict[str, Any]:
    section: dict[str, Any] = {}
    for key in ("meta_information", "public_information", "private_information"):
        fields = getattr(state, key)
        if not fields:
            continue
        entries = []
        for state_field in fields:
            entry: dict[str, Any] = {"name": state_field.name, "type": state_field.type}
            if state_field.default is not None:
                entry["default"] = state_field.default
            entries.append(entry)
        section[key] = entries
    return section


def _runner_section(
    project: Project,
    server: ServerConfig,
    resolution: RunnerResolution,
) -> dict[str, Any]:
    section: dict[str, Any] = {
        "type": resolution.runner_type,
        "game_id": project.game_id if project.game_id is not None else 0,
        "hostname": server.hostname,
        "port": server.port,
        "path": server.path,
    }
    if project.logs_dir:
        section["logs_dir"] = project.logs_dir
    if project.log_level:
        section["log_level"] = project.log_level
    section.update(
        (key, value) for key, value in resolution.runner_block.items() if key != "type"
    )
    return section


def build_document(project: Project, server: ServerConfig) -> dict[str, Any]:
    """Assemble the configuration as an ordered mapping (before quoting)."""
    document: dict[str, Any] = {"name": project.name}

    if project.description:
        document["description"] = project.description
    if project.game_id is not None:
        document["game_id"] = project.game_id

    if project.prompt_partials:
        document["prompt_partials"] = [
            {"name": partial.name, "content": BlockStr(partial.content)}
            for partial in project.prompt_partials
        ]

    if project.agent_roles:
        document["agent_roles"] = [_role_section(role) for role in project.agent_roles]

    agents = expand_agents(project.agent_roles)
    if agents:
        document["agents"] = agents

    state = _state_section(project.state)
    if state:
        document["state"] = state

    resolution = resolve_runner(project.manager)
    document["manager"] = resolution.manager_block
    document["runner"] = _runner_section(project, server, resolution)
    return document


def compile_config(project: Project, server: ServerConfig) -> str:
    """Compile a project into runner configuration text."""
    text = dump_config(build_document(project, server))
    logger.debug(
        f"Compiled '{project.name}': {len(project.agent_roles)} role(s), "
        f"{len(text)} chars"
    )
    return text


# ============================================================================
# Filename
# ============================================================================


_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]")


def config_filename(project_name: str) -> str:
    """Suggested filename for an exported configuration.

    Every character outside ``[a-z0-9]`` (after lower-casing) becomes one
    underscore; runs are not collapsed.

    Example:
        "Test Project" -> "test_project_config.yaml"
    """
    return _UNSAFE_FILENAME_CHARS.sub("_", project_name.lower()) + CONFIG_SUFFIX
