"""
Core Models - Project, roles, state schema, managers and server target.
"""

from simforge.core.models.project import (
    AgentRole,
    HybridPhaseManager,
    ManagerConfig,
    Project,
    ProjectSummary,
    PromptPartial,
    ServerConfig,
    State,
    StateField,
    TurnBasedPhaseManager,
    default_state,
)

__all__ = [
    "AgentRole",
    "HybridPhaseManager",
    "ManagerConfig",
    "Project",
    "ProjectSummary",
    "PromptPartial",
    "ServerConfig",
    "State",
    "StateField",
    "TurnBasedPhaseManager",
    "default_state",
]
