"""
Configuration loader.

Reads a runner configuration produced by the compiler back into a Project
and the ServerConfig from its runner section. Keys the compiler omits are
restored to their model defaults; the ``agents`` list is ignored because it
is derived from ``number_of_agents``.
"""

from __future__ import annotations

from typing import Any

import yaml
from pydantic import ValidationError

from simforge.core.models.project import Project, PromptPartial, ServerConfig
from simforge.infrastructure.export.compiler import RUNNERS
from simforge.utils.ids import generate_partial_id
from simforge.utils.logging import get_logger

logger = get_logger("export.loader")

_RUNNER_FOR_MANAGER = {
    manager_cls.model_fields["type"].default: runner_type
    for manager_cls, (runner_type, _) in RUNNERS.items()
}

_HYBRID_RUNNER_KEYS = ("continuous_phases", "max_action_delay", "min_action_delay")


class ConfigLoadError(ValueError):
    """The text is not a configuration this tool can read."""


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigLoadError(f"'{where}' must be a mapping, got {type(value).__name__}")
    return value


def load_config(text: str) -> tuple[Project, ServerConfig]:
    """Parse configuration text.

    Raises:
        ConfigLoadError: If the YAML is malformed, the manager and runner
            types do not pair up, or the result fails model validation
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML: {e}") from e

    data = _mapping(data, "document")
    manager = dict(_mapping(data.get("manager"), "manager"))
    runner = _mapping(data.get("runner"), "runner")

    manager_type = manager.get("type", "TurnBasedPhaseManager")
    expected_runner = _RUNNER_FOR_MANAGER.get(manager_type)
    if expected_runner is None:
        raise ConfigLoadError(f"Unknown manager type: {manager_type}")
    runner_type = runner.get("type", expected_runner)
    if runner_type != expected_runner:
        raise ConfigLoadError(
            f"Runner {runner_type} does not match manager {manager_type} "
            f"(expected {expected_runner})"
        )
    if manager_type == "HybridPhaseManager":
        manager.update({k: runner[k] for k in _HYBRID_RUNNER_KEYS if k in runner})

    try:
        partials = [
            PromptPartial(
                id=generate_partial_id(),
                name=item.get("name", ""),
                content=item.get("content", ""),
            )
            for item in data.get("prompt_partials") or []
        ]
        project = Project(
            name=data.get("name", ""),
            description=data.get("description"),
            game_id=data.get("game_id"),
            prompt_partials=partials,
            agent_roles=data.get("agent_roles") or [],
            state=data.get("state") or {},
            manager=manager or {"type": manager_type},
            logs_dir=runner.get("logs_dir"),
            log_level=runner.get("log_level"),
        )
        server = ServerConfig(
            hostname=runner.get("hostname", "localhost"),
            port=runner.get("port", 8765),
            path=runner.get("path", "wss"),
        )
    except (ValidationError, AttributeError, TypeError) as e:
        raise ConfigLoadError(f"Invalid configuration: {e}") from e

    logger.debug(f"Loaded configuration for '{project.name}'")
    return project, server
