"""
Shared fixtures for offline unit tests.

Nothing here touches the network: requests are answered by an in-memory
fake API plugged into httpx.MockTransport.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from apisuite.api_testing.framework.environment import Environment
from apisuite.api_testing.framework.http_transport import HttpTransport


class FakeApi:
    """Route table keyed by (method, path) that records every request."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Any = None,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                if text is not None:
                    return httpx.Response(status, text=text, headers=headers)
                return httpx.Response(status, json=json, headers=headers)
        self.routes[(method.upper(), path)] = handler

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        return handler(request)


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def environment() -> Environment:
    """Credentials configured, no static token, debug on, no retries."""
    return Environment(
        name="Unit",
        base_url="http://api.test",
        timeout_ms=5000,
        retry_count=0,
        username="foo",
        password="bar",
        debug_mode=True,
    )


@pytest.fixture
def open_transport(fake_api: FakeApi) -> Callable[[Environment], HttpTransport]:
    """
    Build an HttpTransport wired to the fake API.

    Usage:
        async with open_transport(environment) as transport:
            ...
    """
    def _factory(env: Environment) -> HttpTransport:
        return HttpTransport(
            env,
            transport=httpx.MockTransport(fake_api),
            retry_backoff=0,
            retry_max_wait=0,
        )
    return _factory
