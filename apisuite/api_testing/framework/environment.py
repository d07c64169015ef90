"""
================================================================================
Environment Selection
================================================================================

Builds the immutable ``Environment`` a test run talks to.

Resolution order for every field (highest wins):
    1. Environment variables (DEV_BASE_URL, STAGING_USERNAME, API_TIMEOUT...)
    2. ``environments.<name>`` section of config/config.yaml
    3. Built-in defaults below

The current environment is picked once, by ``TEST_ENV``, and then passed
explicitly to the token manager and the API client.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from .config_loader import ConfigLoader, ConfigurationError


ENV_SELECTOR = "TEST_ENV"
DEFAULT_ENVIRONMENT = "dev"

# Minimum sane request timeout
MIN_TIMEOUT_MS = 1000

BUILTIN_ENVIRONMENTS: Dict[str, Dict[str, Any]] = {
    "dev": {
        "name": "Development",
        "base_url": "http://localhost:4001",
        "timeout_ms": 30000,
        "retry_count": 2,
        "is_production": False,
        "debug_mode": True,
    },
    "staging": {
        "name": "Staging",
        "base_url": "https://api-staging.example.com",
        "timeout_ms": 30000,
        "retry_count": 3,
        "is_production": False,
        "debug_mode": False,
    },
    "prod": {
        "name": "Production",
        "base_url": "https://api.example.com",
        "timeout_ms": 60000,
        "retry_count": 3,
        "is_production": True,
        "debug_mode": False,
    },
}


@dataclass(frozen=True)
class Environment:
    """
    One target deployment of the API under test.

    Attributes:
        name: Human readable name ("Development")
        base_url: Prefix for every endpoint, no trailing slash expected
        timeout_ms: Per-request timeout enforced by the transport
        retry_count: Retries after the first attempt, enforced by the transport
        api_key: Sent as X-API-Key when present
        static_token: Long-lived bearer token injected out of band (CI)
        username: Login credential
        password: Login credential
        is_production: Production targets never run in debug mode
        debug_mode: Enables verbose auth logging
    """
    name: str
    base_url: str
    timeout_ms: int = 30000
    retry_count: int = 2
    api_key: Optional[str] = None
    static_token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    is_production: bool = False
    debug_mode: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def with_overrides(self, **changes: Any) -> "Environment":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    return value if value else None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if not value:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def load_environment(
    name: str,
    config: Optional[ConfigLoader] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Environment:
    """
    Build the named environment.

    Args:
        name: One of "dev", "staging", "prod"
        config: Loader for config/config.yaml. Built-in defaults only if None.
        env: Variable mapping, defaults to os.environ

    Returns:
        Fully resolved, immutable Environment

    Raises:
        ConfigurationError: Unknown environment name or malformed values
    """
    if name not in BUILTIN_ENVIRONMENTS:
        raise ConfigurationError(
            f"Unknown environment '{name}'. "
            f"Expected one of: {', '.join(BUILTIN_ENVIRONMENTS)}"
        )
    env = env if env is not None else os.environ

    settings = dict(BUILTIN_ENVIRONMENTS[name])
    if config is not None:
        section = config.get_section("environments").get(name) or {}
        settings.update({k: v for k, v in section.items() if v is not None})

    prefix = name.upper()
    is_production = bool(settings.get("is_production", False))
    debug_mode = _env_bool(env, "DEBUG_MODE", bool(settings.get("debug_mode", False)))

    return Environment(
        name=str(settings["name"]),
        base_url=_env_str(env, f"{prefix}_BASE_URL") or str(settings["base_url"]),
        timeout_ms=_env_int(env, "API_TIMEOUT", int(settings["timeout_ms"])),
        retry_count=_env_int(env, "RETRY_COUNT", int(settings["retry_count"])),
        api_key=_env_str(env, f"{prefix}_API_KEY") or settings.get("api_key"),
        static_token=(
            _env_str(env, f"{prefix}_AUTH_TOKEN")
            or _env_str(env, f"{prefix}_JWT_TOKEN")
            or settings.get("static_token")
        ),
        username=_env_str(env, f"{prefix}_USERNAME") or settings.get("username"),
        password=_env_str(env, f"{prefix}_PASSWORD") or settings.get("password"),
        is_production=is_production,
        # Never debug against production
        debug_mode=False if is_production else debug_mode,
    )


def get_current_environment(
    config: Optional[ConfigLoader] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Environment:
    """
    Resolve the environment selected by TEST_ENV.

    An unknown name falls back to "dev" with a warning.
    """
    env = env if env is not None else os.environ
    requested = env.get(ENV_SELECTOR) or DEFAULT_ENVIRONMENT

    if requested not in BUILTIN_ENVIRONMENTS:
        logger.warning(
            f"Unknown environment: {requested}. Using '{DEFAULT_ENVIRONMENT}'."
        )
        requested = DEFAULT_ENVIRONMENT

    environment = load_environment(requested, config=config, env=env)

    if environment.debug_mode:
        logger.debug(f"Running against environment: {environment.name}")
        logger.debug(f"Base URL: {environment.base_url}")

    return environment


def validate_environment(environment: Environment) -> None:
    """
    Sanity-check an environment before any test runs.

    Raises:
        ConfigurationError: Empty base URL or timeout below 1000 ms
    """
    if not environment.base_url:
        raise ConfigurationError("Base URL must not be empty")

    if environment.timeout_ms < MIN_TIMEOUT_MS:
        raise ConfigurationError(
            f"Timeout must be at least {MIN_TIMEOUT_MS}ms, "
            f"got {environment.timeout_ms}ms"
        )

    if environment.is_production and not environment.api_key:
        logger.warning("No API key configured for the production environment")


__all__ = [
    "BUILTIN_ENVIRONMENTS",
    "ENV_SELECTOR",
    "Environment",
    "get_current_environment",
    "load_environment",
    "validate_environment",
]
