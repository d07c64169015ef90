"""
================================================================================
API Testing Pytest Configuration
================================================================================

Shared fixtures for the live API suites.

Fixtures:
    - environment: Environment selected by TEST_ENV, validated once
    - api_client: ApiClient over a fresh transport, logged out afterwards
    - authenticated_client: api_client after a successful login
    - assertions: ApiAssertions helper

Every test in this directory is skipped when the target API cannot be
reached, so the suite stays green on machines without a running backend.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import uuid
from typing import Any, AsyncGenerator, Dict, List

import allure
import httpx
import pytest
import pytest_asyncio
from loguru import logger

from apisuite.api_testing.framework import (
    ApiAssertions,
    ApiClient,
    AuthenticationError,
    ConfigLoader,
    Environment,
    HttpTransport,
    MissingCredentialsError,
    get_current_environment,
    validate_environment,
)


REACHABILITY_TIMEOUT = 3.0


# =============================================================================
# Session-Scoped Fixtures (Shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def config() -> ConfigLoader:
    """Configuration loaded once per session."""
    return ConfigLoader()


@pytest.fixture(scope="session")
def environment(config: ConfigLoader) -> Environment:
    """Target environment, validated before any request is made."""
    env = get_current_environment(config)
    validate_environment(env)
    logger.info(f"Testing against {env.name}: {env.base_url}")
    return env


@pytest.fixture(scope="session")
def api_reachable(environment: Environment) -> bool:
    """Probe the base URL once; any HTTP answer counts as reachable."""
    try:
        httpx.get(environment.base_url, timeout=REACHABILITY_TIMEOUT)
    except httpx.TransportError as e:
        logger.warning(f"API not reachable at {environment.base_url}: {e!r}")
        return False
    return True


@pytest.fixture(autouse=True)
def _require_api(api_reachable: bool, environment: Environment) -> None:
    if not api_reachable:
        pytest.skip(f"API unavailable at {environment.base_url}")


# =============================================================================
# Function-Scoped Fixtures (Fresh for each test)
# =============================================================================

@pytest_asyncio.fixture
async def api_client(environment: Environment) -> AsyncGenerator[ApiClient, None]:
    """
    Authenticated client for API requests.

    Usage:
        async def test_example(api_client):
            response = await api_client.get("/users")
            assert response.status_code == 200
    """
    async with HttpTransport(environment) as transport:
        client = ApiClient(environment, transport)
        yield client
        await client.logout()


@pytest_asyncio.fixture
async def authenticated_client(api_client: ApiClient) -> ApiClient:
    """api_client with a token in hand; skips when credentials are unusable."""
    try:
        await api_client.login()
    except MissingCredentialsError as e:
        pytest.skip(f"No credentials configured: {e}")
    except AuthenticationError as e:
        pytest.skip(f"Configured credentials rejected ({e.status_code})")
    return api_client


@pytest.fixture
def assertions() -> ApiAssertions:
    return ApiAssertions()


@pytest.fixture
def unique_id() -> str:
    """
    Generate unique identifier for test isolation.
    """
    return f"autotest_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def new_user_payload(unique_id: str) -> Dict[str, Any]:
    """User creation payload that won't collide with other runs."""
    return {
        "username": unique_id,
        "email": f"{unique_id}@test.example.com",
        "password": f"Pw-{uuid.uuid4().hex[:12]}",
        "firstName": "Auto",
        "lastName": "Tester",
        "roles": ["ROLE_CLIENT"],
    }


# =============================================================================
# Cleanup Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def cleanup_users(authenticated_client: ApiClient) -> AsyncGenerator[List[str], None]:
    """
    Track and delete users created during a test.

    Usage:
        async def test_create_user(authenticated_client, cleanup_users):
            ...
            cleanup_users.append(username)  # Deleted after test
    """
    created: List[str] = []
    yield created

    for username in created:
        try:
            await authenticated_client.delete(f"/users/{username}")
            logger.debug(f"Cleaned up user: {username}")
        except httpx.HTTPError as e:
            logger.warning(f"Failed to cleanup user {username}: {e!r}")


# =============================================================================
# Allure Reporting Hooks
# =============================================================================

def pytest_exception_interact(node, call, report):
    """Attach additional info on test failure."""
    if report.failed:
        allure.attach(
            str(call.excinfo.value),
            name="Error Details",
            attachment_type=allure.attachment_type.TEXT
        )
