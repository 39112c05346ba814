"""
Project library.

Creates new projects, roles and partials with fresh identifiers, imports
projects from JSON or from an exported configuration, and keeps the saved
projects in a single JSON file:

    {
      "projects": {"<id>": {...project, camelCase...}},
      "customStateTypes": ["vector", ...]
    }

Storage is best effort. A missing file is an empty library; a file that
cannot be read or parsed is logged and treated as empty; a failed write is
logged and the in-memory library keeps the change.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from simforge.core.models.project import (
    AgentRole,
    Project,
    ProjectSummary,
    PromptPartial,
    default_state,
)
from simforge.utils.ids import generate_partial_id, generate_project_id, next_role_id
from simforge.utils.logging import get_logger, log_error, log_operation

logger = get_logger("core.library")


class ProjectNotFound(KeyError):
    """No project with the requested id is stored."""


# ============================================================================
# Factories
# ============================================================================


def materialize(project: Project) -> Project:
    """Copy of ``project`` with a fresh id and creation time."""
    return project.model_copy(
        update={"id": generate_project_id(), "created_at": datetime.now(UTC)},
        deep=True,
    )


def new_project(
    name: str,
    description: str = "",
    game_id: Optional[int] = None,
) -> Project:
    """Materialize a brand-new project.

    The state schema is seeded with the meta fields every runner needs.

    Raises:
        pydantic.ValidationError: If the name is empty after trimming
    """
    project = Project(
        id=generate_project_id(),
        created_at=datetime.now(UTC),
        name=name,
        description=description,
        game_id=game_id,
        state=default_state(),
    )
    log_operation(logger, "Created project", {"id": project.id, "name": project.name})
    return project


def new_role(roles: list[AgentRole]) -> AgentRole:
    role_id = next_role_id([role.role_id for role in roles])
    return AgentRole(
        role_id=role_id,
        name=f"Role {role_id}",
        prompts={"system": "", "user": ""},
    )


def new_partial(partials: list[PromptPartial]) -> PromptPartial:
    return PromptPartial(
        id=generate_partial_id(),
        name=f"partial_{len(partials) + 1}",
        content="",
    )


# ============================================================================
# Import
# ============================================================================


def import_project_text(text: str) -> Project:
    """Import project JSON (camelCase or snake_case) or an exported config.

    JSON is tried first; anything else is read as a configuration. Either
    way the result is a new project with its own id.

    Raises:
        pydantic.ValidationError: If the JSON is not a valid project
        ConfigLoadError: If the text is not JSON and not a configuration
    """
    # Imported lazily: the loader depends on the export package.
    from simforge.infrastructure.export.loader import load_config

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict):
        project = Project.model_validate(data)
        source = "json"
    else:
        project, _ = load_config(text)
        source = "config"

    project = materialize(project)
    log_operation(
        logger,
        "Imported project",
        {"id": project.id, "name": project.name, "source": source},
    )
    return project


def import_project_file(path: str | Path) -> Project:
    return import_project_text(Path(path).read_text(encoding="utf-8"))


# ============================================================================
# Library
# ============================================================================


class ProjectLibrary:
    """Saved projects plus the user's custom state types.

    Usage:
        library = ProjectLibrary(config.library_path)
        library.save(new_project("Market"))
        for summary in library.list_summaries():
            print(summary.name)
    """

    PROJECTS_KEY = "projects"
    CUSTOM_TYPES_KEY = "customStateTypes"

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._projects: dict[str, Project] = {}
        self.custom_state_types: list[str] = []
        self._load()

    def __len__(self) -> int:
        return len(self._projects)

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._projects

    # ------------------------------------------------------------------
    # Disk
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            projects = {
                project_id: Project.model_validate(item)
                for project_id, item in (data.get(self.PROJECTS_KEY) or {}).items()
            }
            custom_types = [str(t) for t in data.get(self.CUSTOM_TYPES_KEY) or []]
        except (OSError, ValueError, ValidationError) as e:
            log_error(logger, "load project library", e, {"path": str(self.path)})
            return

        self._projects = projects
        self.custom_state_types = custom_types
        logger.debug(f"Loaded {len(projects)} project(s) from {self.path}")

    def _to_dict(self) -> dict[str, Any]:
        return {
            self.PROJECTS_KEY: {
                project_id: project.model_dump(mode="json", by_alias=True)
                for project_id, project in self._projects.items()
            },
            self.CUSTOM_TYPES_KEY: list(self.custom_state_types),
        }

    def _write(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            log_error(logger, "write project library", e, {"path": str(self.path)})
            return False
        return True

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_summaries(self) -> list[ProjectSummary]:
        return [project.summary() for project in self._projects.values()]

    def get(self, project_id: str) -> Project:
        """Look up a stored project.

        Raises:
            ProjectNotFound: If no project has that id
        """
        try:
            return self._projects[project_id]
        except KeyError:
            raise ProjectNotFound(project_id) from None

    def save(self, project: Project) -> Project:
        """Store a project, materializing it first if it has no id."""
        if project.id is None:
            project = materialize(project)
        self._projects[project.id] = project
        self._write()
        return project

    def delete(self, project_id: str) -> None:
        if project_id not in self._projects:
            raise ProjectNotFound(project_id)
        del self._projects[project_id]
        self._write()
        log_operation(logger, "Deleted project", {"id": project_id})

    def search(self, term: str) -> list[ProjectSummary]:
        """Case-insensitive match on name and description."""
        needle = term.strip().lower()
        if not needle:
            return self.list_summaries()
        return [
            summary
            for summary in self.list_summaries()
            if needle in summary.name.lower()
            or needle in (summary.description or "").lower()
        ]

    # ------------------------------------------------------------------
    # Custom state types
    # ------------------------------------------------------------------

    def add_custom_state_type(self, type_name: str) -> None:
        if not type_name or type_name in self.custom_state_types:
            return
        self.custom_state_types.append(type_name)
        self._write()
