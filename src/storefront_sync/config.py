# SPDX-License-Identifier: MIT
"""Local process configuration for the storefront sync layer.

This covers where the sync layer finds its stores and logs. The
operator-facing cost-control settings live in the settings store instead,
see :mod:`storefront_sync.settings`.
"""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .constants import DEFAULT_SETTINGS_CACHE_TTL_SECONDS, DEFAULT_STORE_TIMEOUT_SECONDS


ENV_PREFIX = "STOREFRONT_SYNC_"


class StoreConfig(BaseModel):
    """Configuration for the remote collection store."""

    base_url: str = Field(
        "http://localhost:8080", description="Base URL of the collection store API"
    )
    timeout_seconds: int = Field(
        DEFAULT_STORE_TIMEOUT_SECONDS, ge=1, description="Request timeout"
    )


class SettingsStoreConfig(BaseModel):
    """Configuration for the cost-control settings store."""

    db_path: str = Field(
        ".storefront-sync/settings.db", description="SQLite file holding settings"
    )


class SyncConfig(BaseModel):
    """Configuration for the sync layer itself."""

    settings_cache_ttl_seconds: float = Field(
        DEFAULT_SETTINGS_CACHE_TTL_SECONDS,
        ge=0.0,
        description="Serve repeated settings reads from memory for N seconds",
    )


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    log_dir: str | None = Field(
        None, description="Log directory (defaults to .storefront-sync/)"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    store: StoreConfig = StoreConfig()
    settings_store: SettingsStoreConfig = SettingsStoreConfig()
    sync: SyncConfig = SyncConfig()
    logging: LoggingConfig = LoggingConfig()


class ConfigManager:
    """Manages application configuration from files and environment."""

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or self._find_config_file()
        self._config: AppConfig | None = None

    def _find_config_file(self) -> Path | None:
        """Find configuration file in standard locations."""
        search_paths = [
            Path.cwd() / ".storefront-sync" / "config.yaml",
            Path.cwd() / "config" / "config.yaml",
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "storefront-sync" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def load_config(self) -> AppConfig:
        """Load configuration from file or create default."""
        if self._config is not None:
            return self._config

        config_data = self.get_default_config()

        if self.config_path and self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
            config_data = self._deep_merge_configs(config_data, file_config)

        config_data = self._apply_env_overrides(config_data)

        self._config = AppConfig(**config_data)
        return self._config

    def _deep_merge_configs(
        self, default_config: dict[str, Any], override_config: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge override config into default config, one section at a time.

        Example:
            Default: {"store": {"base_url": "http://localhost:8080", "timeout_seconds": 30}}
            Override: {"store": {"timeout_seconds": 5}}
            Result: {"store": {"base_url": "http://localhost:8080", "timeout_seconds": 5}}
        """
        result = copy.deepcopy(default_config)

        for key, value in override_config.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key].update(value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        # Example: STOREFRONT_SYNC_STORE_BASE_URL=https://api.example.com
        overrides = {
            "STORE_BASE_URL": ("store", "base_url"),
            "STORE_TIMEOUT_SECONDS": ("store", "timeout_seconds"),
            "SETTINGS_DB_PATH": ("settings_store", "db_path"),
            "LOG_DIR": ("logging", "log_dir"),
        }
        for suffix, (section, field) in overrides.items():
            value = os.environ.get(f"{ENV_PREFIX}{suffix}")
            if value is not None:
                config_data.setdefault(section, {})[field] = value

        return config_data

    def get_complete_config_dict(self) -> dict[str, Any]:
        """Get the complete configuration as a dictionary for display."""
        return self.load_config().model_dump()

    def show_config(self) -> str:
        """Show the complete configuration in YAML format."""
        return yaml.dump(
            self.get_complete_config_dict(), default_flow_style=False, sort_keys=False
        )

    def get_default_config(self) -> dict[str, Any]:
        """Get the default configuration as a plain dictionary."""
        return AppConfig().model_dump()

    def create_default_config(self, output_path: Path) -> None:
        """Write the default configuration to a YAML file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.get_default_config(), f, default_flow_style=False, sort_keys=False
            )


# Global config manager instance with factory pattern
_config_manager_instance: ConfigManager | None = None


def get_config_manager(config_path: Path | None = None) -> ConfigManager:
    """Get or create the global config manager instance.

    Args:
        config_path: Optional path to config file (only used on first call)

    Returns:
        The global ConfigManager instance
    """
    global _config_manager_instance
    if _config_manager_instance is None:
        _config_manager_instance = ConfigManager(config_path)
    return _config_manager_instance


def set_config_manager(manager: ConfigManager) -> None:
    """Set the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = manager


def reset_config_manager() -> None:
    """Reset the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = None
