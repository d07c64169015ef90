"""
================================================================================
Configuration Loader
================================================================================

YAML-based configuration management with environment variable override support.

Features:
    - Hierarchical YAML configuration loading
    - Environment variable override (LOGGING_LEVEL overrides logging.level)
    - Dot notation path access
    - Default value support

The loader is an ordinary object: build one at startup and hand it to
whatever needs it (see ``environment.get_current_environment``).

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from loguru import logger


# Default configuration file path
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "config" / "config.yaml"


class ConfigurationError(Exception):
    """Raised when configuration loading or access fails."""
    pass


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Environment variables (LOGGING_LEVEL)
        2. YAML configuration file
        3. Default values

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("logging.level", "INFO")
        'DEBUG'  # From YAML or env var

        >>> config.get_section("environments")["dev"]["base_url"]
        'http://localhost:4001'
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file.
                        Uses DEFAULT_CONFIG_PATH if not specified.
            env: Mapping used for overrides. Defaults to os.environ.
        """
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._env = env if env is not None else os.environ
        self._config: Dict[str, Any] = {}
        self._load_config()

    @property
    def path(self) -> Path:
        return self._config_path

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            logger.warning(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {self._config_path}"
            )
        self._config = loaded
        logger.debug(f"Loaded configuration from: {self._config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.

        Args:
            key: Dot-notation path (e.g., "logging.level")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        # Check environment variable first
        env_key = key.upper().replace(".", "_")
        env_value = self._env.get(env_key)
        if env_value is not None:
            return self._convert_type(env_value, default)

        # Navigate YAML config by dot notation
        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get entire configuration section.

        Args:
            section: Section name (e.g., "environments", "logging")

        Returns:
            Section dictionary or empty dict if not found
        """
        value = self._config.get(section)
        return value if isinstance(value, dict) else {}

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    def _convert_type(self, value: str, reference: Any) -> Any:
        """
        Convert string value to match reference type.

        Used for environment variables which are always strings.
        """
        if reference is None:
            return value

        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                return value
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                return value

        return value


__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "DEFAULT_CONFIG_PATH",
]
