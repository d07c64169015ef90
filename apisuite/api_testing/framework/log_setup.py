"""
================================================================================
Logging Setup
================================================================================

Centralized Loguru configuration for the harness and the test runner.

Usage:
    from apisuite.api_testing.framework.log_setup import init_logger

    init_logger(config=ConfigLoader())  # LOGGING_LEVEL or logging.level
    init_logger(level="DEBUG", log_file="logs/api.log")

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config_loader import ConfigLoader


DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_logger_initialized = False


def init_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    config: Optional[ConfigLoader] = None,
    force: bool = False,
) -> None:
    """
    Initializes the loguru logger with standard settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        log_file: Optional file path to write logs to. Defaults to config value.
        config: Loader consulted for logging.* keys
        force: Re-initialize even if already done (e.g. level changed)
    """
    global _logger_initialized

    if _logger_initialized and not force:
        return

    def _setting(key: str, default):
        return config.get(key, default) if config is not None else default

    level = (level or _setting("logging.level", "INFO")).upper()

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format=DEFAULT_FORMAT,
        level=level,
        colorize=True,
    )

    log_file = log_file or _setting("logging.file", None)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=DEFAULT_FORMAT,
            level=level,
            rotation=_setting("logging.rotation", "10 MB"),
            retention=_setting("logging.retention", "7 days"),
        )

    _logger_initialized = True
    logger.debug("Logger initialized successfully")


__all__ = [
    "init_logger",
]
