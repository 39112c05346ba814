"""
Test Suite: Project Library

Tests for project/role/partial factories, importing, and the JSON-backed
library including its I/O error handling.
"""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from simforge.core.library import (
    ProjectLibrary,
    ProjectNotFound,
    import_project_file,
    import_project_text,
    new_partial,
    new_project,
    new_role,
)
from simforge.core.models.project import AgentRole, PromptPartial, ServerConfig
from simforge.infrastructure.export.compiler import compile_config
from simforge.infrastructure.export.loader import ConfigLoadError


def test_new_project():
    print("\nTesting new project...")

    project = new_project("  Market Sim  ", description="Traders", game_id=3)

    assert project.id.startswith("PRJ_")
    assert project.created_at is not None
    assert project.created_at.tzinfo is not None
    assert project.name == "Market Sim"
    assert [f.name for f in project.state.meta_information] == ["game_id", "phase"]
    assert project.manager.type == "TurnBasedPhaseManager"
    print(f"  ✓ Created {project.id}")

    other = new_project("Market Sim")
    assert other.id != project.id
    print("  ✓ Ids are unique")

    with pytest.raises(ValidationError):
        new_project("   ")
    print("  ✓ Blank name rejected")


def test_assignment_is_validated():
    print("\nTesting assignment validation...")

    project = new_project("Assigned")

    with pytest.raises(ValidationError):
        project.name = "   "
    assert project.name == "Assigned"
    print("  ✓ Blank name assignment rejected")

    project.name = "  Renamed  "
    assert project.name == "Renamed"

    with pytest.raises(ValidationError):
        project.prompt_partials = [
            PromptPartial(id="a", name="intro"),
            PromptPartial(id="b", name="intro"),
        ]
    print("  ✓ Duplicate partial names rejected on assignment")


def test_new_role_and_partial():
    print("\nTesting role and partial factories...")

    first = new_role([])
    assert first.role_id == 1
    assert first.name == "Role 1"
    assert first.prompts == {"system": "", "user": ""}

    roles = [AgentRole(role_id=1, name="A"), AgentRole(role_id=5, name="B")]
    assert new_role(roles).role_id == 6
    print("  ✓ Role ids continue past the largest")

    partial = new_partial([PromptPartial(id="x", name="rules")])
    assert partial.name == "partial_2"
    assert partial.content == ""
    assert partial.id != new_partial([]).id
    print("  ✓ Partials get uuid ids and sequential names")


def test_import_camel_case_json():
    print("\nTesting JSON import...")

    data = {
        "id": "old-id",
        "name": "Imported",
        "promptPartials": [{"id": "p", "name": "rules", "content": "Be fair."}],
        "agentRoles": [
            {
                "roleId": 1,
                "name": "Trader",
                "llmType": "ChatOpenAI",
                "llmParams": {"modelName": "gpt-4"},
                "numberOfAgents": 3,
                "prompts": {"system": "Trade."},
            }
        ],
        "state": {
            "metaInformation": [{"name": "round", "type": "int", "default": 0}],
            "publicInformation": [],
            "privateInformation": [],
        },
        "manager": {
            "type": "HybridPhaseManager",
            "continuousPhases": [1],
            "maxActionDelay": 4,
            "minActionDelay": 1,
        },
    }
    project = import_project_text(json.dumps(data))

    assert project.id != "old-id"
    assert project.agent_roles[0].number_of_agents == 3
    assert project.agent_roles[0].llm_params == {"modelName": "gpt-4"}
    assert project.state.meta_information[0].name == "round"
    assert project.manager.continuous_phases == [1]
    print("  ✓ camelCase keys accepted, fresh id assigned")

    round_trip = import_project_text(project.to_json())
    assert round_trip.id != project.id
    assert round_trip.agent_roles[0].role_id == 1
    print("  ✓ Exported JSON imports again")


def test_import_config_yaml(tmp_path):
    source = new_project("From YAML", game_id=2)
    path = tmp_path / "from_yaml_config.yaml"
    path.write_text(compile_config(source, ServerConfig()), encoding="utf-8")

    project = import_project_file(path)

    assert project.name == "From YAML"
    assert project.game_id == 2
    assert project.id is not None
    assert project.id != source.id


def test_import_rejects_garbage():
    with pytest.raises(ConfigLoadError):
        import_project_text("- not\n- a project\n")
    with pytest.raises(ValidationError):
        import_project_text('{"description": "no name"}')


# ============================================================================
# Library storage
# ============================================================================


def test_library_save_get_delete(tmp_path):
    print("\nTesting library storage...")

    path = tmp_path / "projects.json"
    library = ProjectLibrary(path)
    assert len(library) == 0

    project = library.save(new_project("Alpha", description="First"))
    library.save(new_project("Beta"))
    assert path.exists()
    print("  ✓ Saved two projects")

    reopened = ProjectLibrary(path)
    assert len(reopened) == 2
    assert reopened.get(project.id).description == "First"
    assert {s.name for s in reopened.list_summaries()} == {"Alpha", "Beta"}
    print("  ✓ Reloaded from disk")

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert "createdAt" in stored["projects"][project.id]
    assert stored["customStateTypes"] == []
    print("  ✓ Stored as camelCase JSON")

    reopened.delete(project.id)
    assert project.id not in ProjectLibrary(path)
    with pytest.raises(ProjectNotFound):
        reopened.get(project.id)
    with pytest.raises(KeyError):
        reopened.delete(project.id)
    print("  ✓ Delete removes the project")


def test_library_search(tmp_path):
    library = ProjectLibrary(tmp_path / "projects.json")
    library.save(new_project("Project 1"))
    library.save(new_project("Project 2", description="auction house"))
    library.save(new_project("Other"))

    assert [s.name for s in library.search("project 1")] == ["Project 1"]
    assert [s.name for s in library.search("AUCTION")] == ["Project 2"]
    assert len(library.search("")) == 3


def test_library_save_materializes(tmp_path):
    from simforge.core.models.project import Project

    library = ProjectLibrary(tmp_path / "projects.json")
    saved = library.save(Project(name="No id yet"))
    assert saved.id is not None
    assert saved.created_at is not None
    assert saved.id in library


def test_custom_state_types(tmp_path):
    path = tmp_path / "projects.json"
    library = ProjectLibrary(path)

    library.add_custom_state_type("vector")
    library.add_custom_state_type("vector")
    library.add_custom_state_type("")
    library.add_custom_state_type("matrix")

    assert library.custom_state_types == ["vector", "matrix"]
    assert ProjectLibrary(path).custom_state_types == ["vector", "matrix"]


def test_invalid_library_file_is_treated_as_empty(tmp_path, caplog):
    print("\nTesting unreadable library file...")

    path = tmp_path / "projects.json"
    path.write_text("not valid JSON", encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="simforge"):
        library = ProjectLibrary(path)

    assert len(library) == 0
    assert library.custom_state_types == []
    assert any("load project library" in r.getMessage() for r in caplog.records)
    print("  ✓ Invalid JSON logged and ignored")


def test_failed_write_keeps_memory_state(tmp_path, caplog):
    print("\nTesting failed library write...")

    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    library = ProjectLibrary(blocker / "projects.json")

    with caplog.at_level(logging.ERROR, logger="simforge"):
        project = library.save(new_project("Kept"))

    assert library.get(project.id).name == "Kept"
    assert any("write project library" in r.getMessage() for r in caplog.records)
    assert not Path(blocker / "projects.json").exists()
    print("  ✓ Write failure logged, in-memory state kept")
