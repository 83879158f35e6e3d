"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``FLIPS_``, nested via ``__``)
2. YAML config file (``FLIPS_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class StoreEngine(enum.StrEnum):
    """Supported flip store backends."""

    SQL = "sql"
    MEMORY = "memory"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLIPS_SERVER__",
        case_sensitive=False,
    )

    host: str = "127.0.0.1"
    port: int = 3010


class DatabaseConfig(BaseSettings):
    """Database settings for the SQL flip store."""

    model_config = SettingsConfigDict(
        env_prefix="FLIPS_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    store: StoreEngine = Field(
        default=StoreEngine.SQL,
        description="Flip store backend: sql or memory",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./flips.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class NodeConfig(BaseSettings):
    """Blockchain node JSON-RPC settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLIPS_NODE__",
        case_sensitive=False,
    )

    url: str = "http://localhost:9009"
    api_key: str = ""
    timeout: float = 30.0


class FlipConfig(BaseSettings):
    """Flip lifecycle settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLIPS_FLIP__",
        case_sensitive=False,
    )

    max_size: int = Field(
        default=1024 * 1024,
        gt=0,
        description="Per-payload limit in hex characters; public + private may use twice this",
    )
    poll_interval: float = Field(default=10.0, gt=0, description="Seconds between tx lookups")
    epoch_check_interval: float = Field(
        default=60.0, gt=0, description="Seconds between epoch observer checks"
    )


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLIPS_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


class TaskConfig(BaseSettings):
    """Background task settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLIPS_TASK__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``FLIPS_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLIPS_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    node: NodeConfig = Field(default_factory=NodeConfig)
    flip: FlipConfig = Field(default_factory=FlipConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    task: TaskConfig = Field(default_factory=TaskConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
