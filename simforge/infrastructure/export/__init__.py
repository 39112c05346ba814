"""
Export - compile projects to runner configurations and persist them.
"""

from simforge.infrastructure.export.compiler import (
    compile_config,
    config_filename,
    expand_agents,
    resolve_runner,
)
from simforge.infrastructure.export.loader import ConfigLoadError, load_config
from simforge.infrastructure.export.persistence import (
    ExportResult,
    SaveCancelled,
    SaveOutcome,
    export_project,
    save_config,
    select_strategy,
)

__all__ = [
    # Compiler
    "compile_config",
    "config_filename",
    "expand_agents",
    "resolve_runner",
    # Loader
    "ConfigLoadError",
    "load_config",
    # Persistence
    "ExportResult",
    "SaveCancelled",
    "SaveOutcome",
    "export_project",
    "save_config",
    "select_strategy",
]
