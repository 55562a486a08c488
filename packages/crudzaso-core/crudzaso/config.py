"""
Crudzaso Configuration

Loads settings from ~/.crudzaso/config.yaml with environment variable overrides.
Supports in-memory, SQLite and PostgreSQL storage configurations.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional
import os
import logging

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".crudzaso"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

STORAGE_TYPES = ("memory", "sqlite", "postgres")


@dataclass
class StorageConfig:
    """Key-value store settings."""

    type: str = "sqlite"  # "memory", "sqlite" or "postgres"
    sqlite_path: str = "~/.crudzaso/crudzaso.db"
    postgres_url: Optional[str] = None


@dataclass
class SessionConfig:
    """Login session settings."""

    ttl_hours: int = 24
    auto_login_after_register: bool = True


@dataclass
class TasksConfig:
    """Task list settings."""

    page_size: int = 10
    dashboard_limit: int = 5
    seed_demo_data: bool = True


@dataclass
class StatisticsConfig:
    """Statistics cache settings."""

    cache_ttl_seconds: int = 300


@dataclass
class TimersConfig:
    """Periodic job intervals."""

    autosave_interval_seconds: float = 15
    refresh_interval_seconds: float = 30


@dataclass
class CrudzasoConfig:
    """
    Complete Crudzaso configuration.

    Loaded from ~/.crudzaso/config.yaml with environment variable overrides.
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    tasks: TasksConfig = field(default_factory=TasksConfig)
    statistics: StatisticsConfig = field(default_factory=StatisticsConfig)
    timers: TimersConfig = field(default_factory=TimersConfig)
    log_level: str = "INFO"

    def to_dict(self) -> dict:
        """Convert to dictionary for display (masks secrets)."""
        result = asdict(self)

        # Mask database URL
        if result.get("storage", {}).get("postgres_url"):
            url = result["storage"]["postgres_url"]
            result["storage"]["postgres_url"] = url[:30] + "..." if len(url) > 30 else "***"

        return result


def _parse_storage_config(data: dict) -> StorageConfig:
    """Parse storage configuration from YAML data."""
    storage_data = data.get("storage", {}) or {}

    storage_type = storage_data.get("type", "sqlite")

    sqlite_config = storage_data.get("sqlite", {}) or {}
    sqlite_path = sqlite_config.get("path", "~/.crudzaso/crudzaso.db")

    postgres_config = storage_data.get("postgres", {}) or {}
    postgres_url = postgres_config.get("url")

    # URL may come from an environment variable reference
    url_env = postgres_config.get("url_env")
    if url_env and not postgres_url:
        postgres_url = os.environ.get(url_env)

    return StorageConfig(
        type=storage_type,
        sqlite_path=sqlite_path,
        postgres_url=postgres_url,
    )


def _parse_session_config(data: dict) -> SessionConfig:
    """Parse session configuration from YAML data."""
    session_data = data.get("session", {}) or {}

    return SessionConfig(
        ttl_hours=int(session_data.get("ttl_hours", 24)),
        auto_login_after_register=bool(session_data.get("auto_login_after_register", True)),
    )


def _parse_tasks_config(data: dict) -> TasksConfig:
    """Parse task list configuration from YAML data."""
    tasks_data = data.get("tasks", {}) or {}

    return TasksConfig(
        page_size=int(tasks_data.get("page_size", 10)),
        dashboard_limit=int(tasks_data.get("dashboard_limit", 5)),
        seed_demo_data=bool(tasks_data.get("seed_demo_data", True)),
    )


def _parse_statistics_config(data: dict) -> StatisticsConfig:
    stats_data = data.get("statistics", {}) or {}
    return StatisticsConfig(cache_ttl_seconds=int(stats_data.get("cache_ttl_seconds", 300)))


def _parse_timers_config(data: dict) -> TimersConfig:
    timers_data = data.get("timers", {}) or {}
    return TimersConfig(
        autosave_interval_seconds=float(timers_data.get("autosave_interval_seconds", 15)),
        refresh_interval_seconds=float(timers_data.get("refresh_interval_seconds", 30)),
    )


def load_config(config_path: Optional[Path] = None) -> CrudzasoConfig:
    """
    Load configuration from file with environment variable overrides.

    Args:
        config_path: Optional path to config file. Defaults to ~/.crudzaso/config.yaml

    Returns:
        CrudzasoConfig instance
    """
    config_file = config_path or CONFIG_FILE
    config = CrudzasoConfig()

    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}

            config.storage = _parse_storage_config(data)
            config.session = _parse_session_config(data)
            config.tasks = _parse_tasks_config(data)
            config.statistics = _parse_statistics_config(data)
            config.timers = _parse_timers_config(data)
            config.log_level = (data.get("logging", {}) or {}).get("level", "INFO")

        except yaml.YAMLError as e:
            logger.warning(f"Could not parse config file at {config_file}: {e}")
        except (OSError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Unexpected error loading config from {config_file}: {e}")

    # Environment variable overrides
    if os.environ.get("CRUDZASO_DATABASE_URL"):
        config.storage.type = "postgres"
        config.storage.postgres_url = os.environ["CRUDZASO_DATABASE_URL"]
    elif os.environ.get("CRUDZASO_STORAGE"):
        config.storage.type = os.environ["CRUDZASO_STORAGE"].lower()

    if os.environ.get("CRUDZASO_SQLITE_PATH"):
        config.storage.sqlite_path = os.environ["CRUDZASO_SQLITE_PATH"]

    if os.environ.get("CRUDZASO_LOG_LEVEL"):
        config.log_level = os.environ["CRUDZASO_LOG_LEVEL"].upper()

    return config


def save_config(config: CrudzasoConfig, config_path: Optional[Path] = None) -> None:
    """
    Save configuration to file.

    Args:
        config: CrudzasoConfig instance to save
        config_path: Optional path to config file. Defaults to ~/.crudzaso/config.yaml
    """
    config_file = config_path or CONFIG_FILE

    config_file.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "storage": {
            "type": config.storage.type,
        },
        "session": {
            "ttl_hours": config.session.ttl_hours,
            "auto_login_after_register": config.session.auto_login_after_register,
        },
        "tasks": {
            "page_size": config.tasks.page_size,
            "dashboard_limit": config.tasks.dashboard_limit,
            "seed_demo_data": config.tasks.seed_demo_data,
        },
        "statistics": {
            "cache_ttl_seconds": config.statistics.cache_ttl_seconds,
        },
        "timers": {
            "autosave_interval_seconds": config.timers.autosave_interval_seconds,
            "refresh_interval_seconds": config.timers.refresh_interval_seconds,
        },
        "logging": {
            "level": config.log_level,
        },
    }

    # Add storage-specific config
    if config.storage.type == "sqlite":
        data["storage"]["sqlite"] = {"path": config.storage.sqlite_path}
    elif config.storage.type == "postgres" and config.storage.postgres_url:
        data["storage"]["postgres"] = {"url": config.storage.postgres_url}

    with open(config_file, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    # Secure permissions (readable only by owner)
    config_file.chmod(0o600)

    logger.info(f"Configuration saved to {config_file}")


# Cached config instance
_config: Optional[CrudzasoConfig] = None


def get_config() -> CrudzasoConfig:
    """Get cached config instance, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> CrudzasoConfig:
    """Force reload config from file."""
    global _config
    _config = load_config()
    return _config
