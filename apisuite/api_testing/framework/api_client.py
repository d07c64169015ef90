"""
================================================================================
Authenticated API Client
================================================================================

One async method per HTTP verb, all sharing the same header resolution:

    1. Content-Type / Accept: application/json
    2. X-API-Key when the environment has an API key
    3. Bearer token from the TokenManager when credentials are configured,
       otherwise the environment's static token
    4. Caller-supplied headers, which always win

Headers are rebuilt on every call because the token may change between
requests.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx
from loguru import logger

from .environment import Environment
from .http_transport import HttpTransport
from .token_manager import TokenError, TokenManager


BASE_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

BODY_METHODS = ("POST", "PUT", "PATCH")


def merge_headers(
    defaults: Mapping[str, str],
    overrides: Optional[Mapping[str, str]],
) -> Dict[str, str]:
    """
    Overlay caller headers on computed ones.

    Header names compare case-insensitively, so an override of
    ``authorization`` replaces a computed ``Authorization`` instead of
    sending both.
    """
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = value
    return merged


class ApiClient:
    """
    Authenticated client for the API under test.

    Usage:
        >>> async with HttpTransport(environment) as transport:
        ...     client = ApiClient(environment, transport)
        ...     response = await client.get("/users")
        ...     response = await client.post("/users", {"username": "jane"})
        ...     response = await client.get(
        ...         "/users", headers={"Authorization": "Bearer manual"}
        ...     )
    """

    def __init__(
        self,
        environment: Environment,
        transport: HttpTransport,
        token_manager: Optional[TokenManager] = None,
    ) -> None:
        """
        Args:
            environment: Target environment (base URL, key, credentials)
            transport: Open HttpTransport performing the network calls
            token_manager: Injected manager; one is created if omitted
        """
        self.environment = environment
        self.transport = transport
        self.token_manager = token_manager or TokenManager(environment, transport)

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    async def get(self, endpoint: str, **options: Any) -> httpx.Response:
        """Execute GET request."""
        return await self.request("GET", endpoint, **options)

    async def post(self, endpoint: str, data: Any = None, **options: Any) -> httpx.Response:
        """Execute POST request."""
        return await self.request("POST", endpoint, data, **options)

    async def put(self, endpoint: str, data: Any = None, **options: Any) -> httpx.Response:
        """Execute PUT request."""
        return await self.request("PUT", endpoint, data, **options)

    async def patch(self, endpoint: str, data: Any = None, **options: Any) -> httpx.Response:
        """Execute PATCH request."""
        return await self.request("PATCH", endpoint, data, **options)

    async def delete(self, endpoint: str, **options: Any) -> httpx.Response:
        """Execute DELETE request."""
        return await self.request("DELETE", endpoint, **options)

    async def request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        **options: Any,
    ) -> httpx.Response:
        """
        Resolve headers and hand the request to the transport.

        Args:
            method: HTTP verb
            endpoint: Path appended verbatim to the base URL ("/users/1")
            data: Body for POST/PUT/PATCH; dicts and lists go out as JSON,
                  str/bytes are sent as-is. Ignored for GET/DELETE.
            **options: ``headers`` overrides plus any transport keyword
                       (params, timeout, ...)

        Returns:
            The transport's response, unchanged
        """
        method = method.upper()
        headers = await self._resolve_headers(options.pop("headers", None))

        if method in BODY_METHODS and data is not None:
            if isinstance(data, (str, bytes)):
                options["content"] = data
            else:
                options["json"] = data

        return await self.transport.request(
            method, self._build_url(endpoint), headers=headers, **options
        )

    # ------------------------------------------------------------------
    # Authentication passthroughs
    # ------------------------------------------------------------------

    async def login(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> str:
        return await self.token_manager.login(username, password)

    async def logout(self) -> None:
        await self.token_manager.logout()

    def is_authenticated(self) -> bool:
        return self.token_manager.is_token_valid()

    async def get_token(self) -> str:
        return await self.token_manager.get_valid_token()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_url(self, endpoint: str) -> str:
        return f"{self.environment.base_url}{endpoint}"

    async def _resolve_headers(
        self,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        """
        Compute the outbound header set for a single request.

        A failed token fetch is not fatal: the request goes out without
        Authorization so unauthenticated behaviour can still be probed.
        Transport errors raised while logging in do propagate.
        """
        headers = dict(BASE_HEADERS)

        if self.environment.api_key:
            headers["X-API-Key"] = self.environment.api_key

        if self.environment.has_credentials:
            try:
                headers.update(await self.token_manager.get_auth_headers())
            except TokenError as e:
                if self.environment.debug_mode:
                    logger.debug(f"Proceeding without Authorization header: {e}")
        elif self.environment.static_token:
            headers["Authorization"] = f"Bearer {self.environment.static_token}"

        return merge_headers(headers, overrides)


__all__ = [
    "ApiClient",
    "BASE_HEADERS",
    "merge_headers",
]
