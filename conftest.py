"""
Repository-level pytest configuration (showcase-safe).

Why this exists:
  - Provide safe defaults for demo environments (no secrets embedded)
  - Make the repo more \"plug-and-play\" for reviewers cloning from GitHub
  - Keep behavior explicit and discoverable

Important:
  Values below are placeholders. Credentials and tokens (DEV_USERNAME,
  DEV_PASSWORD, DEV_AUTH_TOKEN...) must come from the CI secret store.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session", autouse=True)
def _demo_safe_env_defaults() -> Generator[None, None, None]:
    """
    Set demo-safe environment defaults if not already provided by the user/CI.

    This prevents accidental leakage and keeps local runs predictable.
    """
    defaults = {
        "TEST_ENV": "dev",
        "DEV_BASE_URL": "http://localhost:4001",
    }

    for k, v in defaults.items():
        os.environ.setdefault(k, v)

    yield
