"""
================================================================================
Token Manager with Expiry Tracking
================================================================================

Manages the JWT used to authenticate API requests:
    - Login against /users/signin with configured or explicit credentials
    - In-memory caching with proactive refresh before expiry
    - Static token bypass for CI pipelines that inject a token out of band
    - Best-effort logout that always clears local state

One TokenManager belongs to one ApiClient; there is no process-wide cache.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable, Dict, Optional, Tuple

import httpx
from loguru import logger

from .environment import Environment
from .http_transport import HttpTransport


SIGNIN_ENDPOINT = "/users/signin"
SIGNOUT_ENDPOINT = "/users/signout"

# Default token TTL (1 hour in seconds)
DEFAULT_TOKEN_TTL = 3600

# Refresh token when less than this many seconds remain
TOKEN_REFRESH_BUFFER = 300  # 5 minutes

# Response fields that may carry the token, tried in order
TOKEN_FIELDS = ("token", "access_token", "jwt")

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class TokenError(Exception):
    """Raised when token operations fail."""
    pass


class MissingCredentialsError(TokenError):
    """No username/password given and none configured for the environment."""
    pass


class AuthenticationError(TokenError):
    """The login endpoint answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Login failed. Status: {status_code}, Error: {body}")


class TokenExtractionError(TokenError):
    """The login succeeded but no token field was found in the response."""
    pass


class NoTokenAvailableError(TokenError):
    """A login completed without leaving a token behind."""
    pass


class TokenManager:
    """
    JWT lifecycle manager.

    States:
        - Empty: no token cached
        - Valid: token cached and more than TOKEN_REFRESH_BUFFER from expiry
        - Expiring: token cached but inside the buffer (refreshed on next use)

    Usage:
        >>> manager = TokenManager(environment, transport)
        >>> headers = await manager.get_auth_headers()
        >>> # {"Authorization": "Bearer eyJ..."}
    """

    def __init__(
        self,
        environment: Environment,
        transport: HttpTransport,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize token manager.

        Args:
            environment: Supplies base URL, credentials and static token
            transport: Used for the signin/signout calls
            clock: Returns epoch seconds; replaceable in tests
        """
        self.environment = environment
        self.transport = transport
        self._clock = clock

        self._token: Optional[str] = None
        self._expires_at: Optional[float] = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at

    def _debug(self, message: str) -> None:
        if self.environment.debug_mode:
            logger.debug(message)

    async def login(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> str:
        """
        Authenticate and cache a fresh token.

        Explicit credentials win; otherwise the environment's are used.
        State is only touched once the whole exchange has succeeded, so a
        failed login leaves any previous token in place.

        Args:
            username: Login name, defaults to environment.username
            password: Password, defaults to environment.password

        Returns:
            The new bearer token

        Raises:
            MissingCredentialsError: No usable credentials
            AuthenticationError: Non-2xx answer from the signin endpoint
            TokenExtractionError: No token field in the answer
            httpx.HTTPError: Transport failures, unchanged
        """
        username = username or self.environment.username
        password = password or self.environment.password

        if not username or not password:
            raise MissingCredentialsError(
                f"No login credentials available for environment "
                f"'{self.environment.name}'. Check the configuration."
            )

        self._debug(f"Attempting login for: {username}")

        response = await self.transport.post(
            f"{self.environment.base_url}{SIGNIN_ENDPOINT}",
            json={"username": username, "password": password},
            headers=dict(JSON_HEADERS),
        )

        if not response.is_success:
            self._debug(f"Login rejected with status {response.status_code}")
            raise AuthenticationError(response.status_code, response.text)

        token, ttl = self._parse_login_response(response)
        expires_at = self._clock() + ttl

        self._debug(f"Login successful. Token valid for {ttl:g}s")
        self._token, self._expires_at = token, expires_at
        return token

    def _parse_login_response(self, response: httpx.Response) -> Tuple[str, float]:
        """Pull (token, ttl_seconds) out of a successful login response."""
        try:
            body: Any = response.json()
        except ValueError as e:
            raise TokenExtractionError(
                "Login response is not valid JSON"
            ) from e

        if not isinstance(body, dict):
            raise TokenExtractionError(
                f"Login response must be a JSON object, got {type(body).__name__}"
            )

        token = next((body[f] for f in TOKEN_FIELDS if body.get(f)), None)
        if not token:
            raise TokenExtractionError(
                f"No token found in login response (looked for: {', '.join(TOKEN_FIELDS)})"
            )

        expires_in = body.get("expires_in")
        if expires_in is None:
            ttl = float(DEFAULT_TOKEN_TTL)
        else:
            try:
                ttl = float(expires_in)
                if not math.isfinite(ttl):
                    raise ValueError(expires_in)
            except (TypeError, ValueError, OverflowError):
                logger.warning(
                    f"Ignoring malformed expires_in={expires_in!r}, "
                    f"using {DEFAULT_TOKEN_TTL}s"
                )
                ttl = float(DEFAULT_TOKEN_TTL)

        return str(token), ttl

    def is_token_valid(self) -> bool:
        """
        Check whether the cached token can still be used.

        A token within TOKEN_REFRESH_BUFFER of its expiry counts as invalid
        so it is replaced before the server starts rejecting it.
        """
        if self._token is None or self._expires_at is None:
            return False
        return self._clock() < self._expires_at - TOKEN_REFRESH_BUFFER

    async def get_valid_token(self) -> str:
        """
        Return a usable bearer token.

        Precedence:
            1. Static token from the environment (no login, cache ignored)
            2. Cached token while still valid
            3. Fresh login with the environment's credentials

        Raises:
            Whatever login() raises; the cache is cleared first.
            NoTokenAvailableError: login returned but nothing was cached
        """
        if self.environment.static_token:
            self._debug("Using static token from environment configuration")
            return self.environment.static_token

        if self.is_token_valid():
            return self._token  # type: ignore[return-value]

        self._debug("Token missing or expiring, logging in again")
        try:
            token = await self.login()
        except Exception:
            self.invalidate()
            raise

        if self._token is None:
            raise NoTokenAvailableError("Failed to obtain a valid token")

        return token

    async def logout(self) -> None:
        """
        Sign out and forget the token.

        The server call is best effort: errors are logged and dropped.
        Local state is cleared on every path.
        """
        token = self._token
        try:
            if token:
                self._debug("Logging out")
                response = await self.transport.post(
                    f"{self.environment.base_url}{SIGNOUT_ENDPOINT}",
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    },
                )
                if not response.is_success:
                    self._debug(f"Signout answered {response.status_code}, ignoring")
        except Exception as e:
            logger.warning(f"Logout request failed, clearing local token anyway: {e!r}")
        finally:
            self.invalidate()
            self._debug("Logged out")

    async def get_auth_headers(self) -> Dict[str, str]:
        """Bearer header for the current valid token."""
        token = await self.get_valid_token()
        return {"Authorization": f"Bearer {token}"}

    def invalidate(self) -> None:
        """
        Drop the cached token.

        Forces the next get_valid_token() to log in again.
        """
        self._token = None
        self._expires_at = None


__all__ = [
    "AuthenticationError",
    "DEFAULT_TOKEN_TTL",
    "MissingCredentialsError",
    "NoTokenAvailableError",
    "TOKEN_FIELDS",
    "TOKEN_REFRESH_BUFFER",
    "TokenError",
    "TokenExtractionError",
    "TokenManager",
]
