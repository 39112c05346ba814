"""
simforge Configuration.

Where the project library lives, where downloads land, the log level, and
the server an export targets when the command line does not say otherwise.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from simforge.core.models.project import ServerConfig

CONFIG_FILENAME = "simforge_config.json"


# ============================================================================
# Default Paths
# ============================================================================


def get_default_data_dir() -> Path:
    """Get the default data directory for simforge."""
    if env_path := os.environ.get("SIMFORGE_DATA_DIR"):
        return Path(env_path)
    return Path.home() / ".simforge"


def get_default_library_path() -> Path:
    return get_default_data_dir() / "projects.json"


def get_default_export_dir() -> Path:
    return get_default_data_dir() / "exports"


# ============================================================================
# Configuration Classes
# ============================================================================


@dataclass
class ServerSettings:
    """Default export target."""

    hostname: str = "localhost"
    port: int = 8765
    path: str = "wss"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerSettings":
        return cls(**{k: v for k, v in data.items() if hasattr(cls, k)})

    def to_dict(self) -> dict[str, Any]:
        return {
            "hostname": self.hostname,
            "port": self.port,
            "path": self.path,
        }

    def to_server_config(self, **overrides: Any) -> ServerConfig:
        """Build a ServerConfig, letting non-None overrides win."""
        values = self.to_dict()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ServerConfig(**values)


@dataclass
class SimforgeConfig:
    """Main configuration for simforge."""

    data_dir: Path = field(default_factory=get_default_data_dir)
    library_path: Path = field(default_factory=get_default_library_path)
    export_dir: Path = field(default_factory=get_default_export_dir)

    server: ServerSettings = field(default_factory=ServerSettings)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def __post_init__(self):
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        if isinstance(self.library_path, str):
            self.library_path = Path(self.library_path)
        if isinstance(self.export_dir, str):
            self.export_dir = Path(self.export_dir)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "SimforgeConfig":
        """Load configuration from a JSON file.

        Args:
            config_path: Path to config file. If None, uses
                ``<data_dir>/simforge_config.json``.

        Returns:
            SimforgeConfig instance (defaults when the file does not exist)
        """
        if config_path is None:
            config_path = get_default_data_dir() / CONFIG_FILENAME

        config_path = Path(config_path)

        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimforgeConfig":
        data_dir = Path(data.get("data_dir", get_default_data_dir()))
        return cls(
            data_dir=data_dir,
            library_path=Path(data.get("library_path", data_dir / "projects.json")),
            export_dir=Path(data.get("export_dir", data_dir / "exports")),
            server=ServerSettings.from_dict(data.get("server", {})),
            log_level=data.get("log_level", "INFO"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_dir": str(self.data_dir),
            "library_path": str(self.library_path),
            "export_dir": str(self.export_dir),
            "server": self.server.to_dict(),
            "log_level": self.log_level,
        }

    def save(self, config_path: str | Path | None = None) -> Path:
        """Save configuration to a JSON file.

        Returns:
            Path to saved file
        """
        if config_path is None:
            config_path = self.data_dir / CONFIG_FILENAME

        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

        return config_path

    def ensure_directories(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.library_path.parent.mkdir(parents=True, exist_ok=True)
        self.export_dir.mkdir(parents=True, exist_ok=True)


# ============================================================================
# Global Config Instance
# ============================================================================


_global_config: SimforgeConfig | None = None


def get_config() -> SimforgeConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = SimforgeConfig.load()
    return _global_config


def set_config(config: SimforgeConfig) -> None:
    global _global_config
    _global_config = config


def reload_config(config_path: str | Path | None = None) -> SimforgeConfig:
    """Reload configuration from disk.

    Args:
        config_path: Optional path to load from

    Returns:
        Newly loaded configuration
    """
    global _global_config
    _global_config = SimforgeConfig.load(config_path)
    return _global_config
