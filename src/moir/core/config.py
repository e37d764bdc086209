"""
Hierarchical configuration management.

Loads configuration from multiple sources with this precedence (highest wins):
    1. Environment variables (PREFIX_SECTION__KEY)
    2. Config file (YAML or JSON)
    3. Built-in defaults

Usage:
    config = Config()

    config = Config(
        config_file="~/.moir/config.yaml",
        env_prefix="MOIR_",
    )

    config.get("backend.project_id")     # dot-notation access
    config.get("timing.autosave_debounce")
"""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from .config_schema import MoirConfig

_DEFAULT_ENV_PREFIX = "MOIR_"
_DEFAULT_DATA_DIR_NAME = ".moir"


class Config:
    """
    Central configuration manager.

    Loads and merges configuration from defaults, a config file, and
    environment variables. Env vars use double-underscore to denote nesting:
    MOIR_BACKEND__PROJECT_ID=moir-app -> config["backend"]["project_id"] = "moir-app"
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        data_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to YAML or JSON configuration file.
            env_prefix: Prefix for environment variable overrides.
            data_dir: Base directory for logs and local settings. Defaults to ~/.moir.
            defaults: Additional default values to merge.
        """
        self.config_file = os.path.expanduser(config_file) if config_file else None
        self.env_prefix = env_prefix or ""
        self._data_dir = data_dir or os.path.join("~", _DEFAULT_DATA_DIR_NAME)
        self._extra_defaults = defaults or {}
        self.config_data: dict[str, Any] = {}

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from all sources."""
        self.config_data = self._get_default_config()

        if self._extra_defaults:
            self._update_dict(self.config_data, self._extra_defaults)

        if self.config_file and os.path.exists(self.config_file):
            file_config = self._load_file(self.config_file)
            self._update_dict(self.config_data, file_config)

        # Env vars override everything
        self._load_from_env()

    def _get_default_config(self) -> dict[str, Any]:
        data_dir = os.path.expanduser(self._data_dir)
        return {
            "paths": {
                "data_dir": data_dir,
                "log_dir": os.path.join(data_dir, "logs"),
            },
            "backend": {
                "kind": "firebase",
                "project_id": "",
                "api_key": "",
                "database": "(default)",
                "timeout": 20,
            },
            "timing": {
                "search_debounce": 0.3,
                "autosave_debounce": 2.0,
                "success_redirect_delay": 2.0,
            },
            "digest": {
                "window_days": 7,
                "min_entries": 3,
            },
            "logging": {
                "level": "WARNING",
            },
        }

    @staticmethod
    def _load_file(path: str) -> dict[str, Any]:
        """Load a YAML or JSON config file."""
        ext = os.path.splitext(path)[1].lower()
        with open(path) as f:
            if ext in (".yaml", ".yml"):
                return yaml.safe_load(f) or {}
            elif ext == ".json":
                return json.load(f)
        return {}

    def _update_dict(self, target: dict, source: dict) -> None:
        """Recursively merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _load_from_env(self) -> None:
        """Override config values from environment variables."""
        if not self.env_prefix:
            return
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(self.env_prefix):
                continue
            config_key = env_key[len(self.env_prefix) :].lower()
            key_parts = config_key.split("__")

            current = self.config_data
            for part in key_parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]
            current[key_parts[-1]] = env_value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Args:
            key_path: e.g. "backend.project_id", "timing.search_debounce"
            default: Returned when key is not found.
        """
        parts = key_path.split(".")
        current = self.config_data
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key_path: str, value: Any) -> None:
        """Set a config value by dot-notation path, creating intermediate dicts."""
        parts = key_path.split(".")
        current = self.config_data
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def get_data_dir(self) -> str:
        """Return the resolved data directory path."""
        return os.path.expanduser(self.get("paths.data_dir", self._data_dir))

    def ensure_directories(self) -> None:
        """Create all configured directories if they don't exist."""
        for path_value in self.config_data.get("paths", {}).values():
            if isinstance(path_value, str):
                os.makedirs(os.path.expanduser(path_value), exist_ok=True)

    def validated(self) -> MoirConfig:
        """Return the merged configuration as a validated pydantic model.

        Raises:
            ConfigurationError: If any section fails validation.
        """
        from pydantic import ValidationError as PydanticValidationError

        from .config_schema import MoirConfig
        from .exceptions import ConfigurationError

        try:
            return MoirConfig.model_validate(self.config_data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


# Module-level singleton
_config_instance: Config | None = None


def get_config(
    config_file: str | None = None,
    env_prefix: str = _DEFAULT_ENV_PREFIX,
    data_dir: str | None = None,
) -> Config:
    """Get or create the global Config singleton."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file=config_file, env_prefix=env_prefix, data_dir=data_dir)
    return _config_instance


def reset_config() -> None:
    """Reset the global Config singleton (useful for testing)."""
    global _config_instance
    _config_instance = None
