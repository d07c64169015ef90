"""
================================================================================
Suite Pytest Configuration
================================================================================

Registers markers shared by the unit and live API suites and initializes
logging once per session.

================================================================================
"""

from pathlib import Path
from typing import Optional

import pytest

from apisuite.api_testing.framework.config_loader import ConfigLoader
from apisuite.api_testing.framework.log_setup import init_logger


SUITE_DIR = Path(__file__).resolve().parent


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass for deployment"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )
    config.addinivalue_line(
        "markers", "P3: Low priority tests - extensive validation"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )
    config.addinivalue_line(
        "markers", "regression: Full regression test suite"
    )
    config.addinivalue_line(
        "markers", "unit: Offline tests against a mocked transport"
    )
    config.addinivalue_line(
        "markers", "requires_external: Tests requiring a reachable API"
    )

    # Domain markers
    config.addinivalue_line(
        "markers", "api: API-specific tests"
    )
    config.addinivalue_line(
        "markers", "auth: Tests related to authentication"
    )
    config.addinivalue_line(
        "markers", "users: Tests related to user management"
    )
    config.addinivalue_line(
        "markers", "performance: Concurrency and response time checks"
    )

    init_logger(config=ConfigLoader())


def suite_of(path: Path, root: Path = SUITE_DIR) -> Optional[str]:
    """First directory of path below root, or None when path lies outside it."""
    try:
        parts = Path(path).relative_to(root).parts
    except ValueError:
        return None
    return parts[0] if len(parts) > 1 else None


def pytest_collection_modifyitems(config, items):
    """Tag tests by location so `-m unit` / `-m api` select whole suites."""
    for item in items:
        suite = suite_of(Path(str(item.fspath)).resolve())
        if suite == "api_testing":
            item.add_marker(pytest.mark.api)
            item.add_marker(pytest.mark.requires_external)
        elif suite == "unit":
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "REST API Automation Harness",
        "=" * 60,
        "",
    ]
