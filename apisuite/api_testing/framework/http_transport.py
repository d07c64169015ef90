"""
================================================================================
Async HTTP Transport with Allure Integration
================================================================================

The network layer underneath the authenticated API client:
    - Async httpx session with the environment's timeout
    - Automatic retry with exponential backoff on network errors
    - Rate limit (429) handling with Retry-After parsing
    - Comprehensive Allure reporting with cURL command generation
    - Secret redaction for everything that reaches a report

The transport knows nothing about authentication; it sends exactly the
headers it is given.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Mapping, Optional

import allure
import httpx
from allure_commons.types import AttachmentType
from loguru import logger

from .environment import Environment


# Maximum response length to include in Allure reports
MAX_RESPONSE_LENGTH = 3000

# Default retry settings
DEFAULT_RETRY_BACKOFF = 0.5
DEFAULT_RETRY_MAX_WAIT = 5.0

MASK = "***MASKED***"
SENSITIVE_HEADERS = {"authorization", "x-api-key", "x-app-auth", "cookie", "set-cookie"}
SENSITIVE_BODY_KEYS = ("password", "secret", "token", "api_key", "authorization", "session")


def _to_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class HttpTransportError(Exception):
    """Base exception for HTTP transport errors."""
    pass


class RateLimitExceeded(HttpTransportError):
    """Raised when rate limit is exceeded and all retries are exhausted."""
    pass


class HttpTransport:
    """
    Async HTTP transport with built-in resilience and reporting.

    Usage:
        >>> async with HttpTransport(environment) as transport:
        ...     response = await transport.get("http://localhost:4001/users")
        ...     print(response.status_code)
    """

    def __init__(
        self,
        environment: Environment,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        retry_max_wait: float = DEFAULT_RETRY_MAX_WAIT,
    ) -> None:
        """
        Initialize transport for an environment.

        Args:
            environment: Supplies timeout and retry count
            transport: Optional httpx transport (httpx.MockTransport in tests)
            retry_backoff: Base wait for exponential backoff, seconds
            retry_max_wait: Cap for any single wait, seconds
        """
        self.environment = environment
        self.timeout = environment.timeout_ms / 1000
        self.retry_count = max(0, int(environment.retry_count))
        self.retry_backoff = retry_backoff
        self.retry_max_wait = retry_max_wait

        self._transport = transport
        self.session: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HttpTransport":
        """Open the underlying httpx session."""
        self.session = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the underlying httpx session."""
        if self.session:
            await self.session.aclose()
            self.session = None

    async def request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Execute HTTP request with automatic retry and Allure logging.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH)
            url: Absolute request URL
            **kwargs: Additional arguments passed to httpx.AsyncClient.request

        Returns:
            httpx.Response object

        Raises:
            RateLimitExceeded: When rate limit retries are exhausted
            httpx.HTTPError: When network retries are exhausted
        """
        if self.session is None:
            raise HttpTransportError(
                "HttpTransport must be used within an async context manager. "
                "Use 'async with HttpTransport(environment) as transport:'"
            )

        attempts = self.retry_count + 1

        for attempt in range(attempts):
            try:
                response = await self.session.request(method, url, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if attempt < attempts - 1:
                    wait_time = self._calculate_backoff(attempt)
                    logger.warning(
                        f"Network error: {e!r}. Retrying in {wait_time}s. "
                        f"Attempt {attempt + 1}/{attempts}"
                    )
                    await asyncio.sleep(wait_time)
                    continue
                logger.error(f"All retries exhausted. Last error: {e!r}")
                raise

            # Handle rate limiting
            if response.status_code == 429:
                if attempt < attempts - 1:
                    retry_after = self._parse_retry_after(response)
                    logger.warning(
                        f"Rate limited (429). Waiting {retry_after}s before retry. "
                        f"Attempt {attempt + 1}/{attempts}"
                    )
                    await asyncio.sleep(retry_after)
                continue

            self._log_to_allure(method, url, kwargs, response)
            return response

        raise RateLimitExceeded(
            f"Rate limit exceeded after {attempts} attempts: {method} {url}"
        )

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute GET request."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute POST request."""
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute PUT request."""
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute PATCH request."""
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute DELETE request."""
        return await self.request("DELETE", url, **kwargs)

    def _parse_retry_after(self, response: httpx.Response) -> float:
        """
        Parse Retry-After header from 429 response.

        Only the delay-seconds form is honoured; an HTTP date or a missing
        header falls back to the base backoff.

        Returns:
            Wait time in seconds (capped at retry_max_wait)
        """
        retry_after = response.headers.get("Retry-After", "")

        try:
            wait_time = max(0.0, float(retry_after))
        except ValueError:
            wait_time = self.retry_backoff

        return min(wait_time, self.retry_max_wait)

    def _calculate_backoff(self, attempt: int) -> float:
        """
        Calculate exponential backoff wait time.

        Formula: base * (2 ^ attempt), capped at max_wait
        """
        wait_time = self.retry_backoff * (2 ** attempt)
        return min(wait_time, self.retry_max_wait)

    def _log_to_allure(
        self,
        method: str,
        url: str,
        kwargs: Dict[str, Any],
        response: httpx.Response,
    ) -> None:
        """
        Log HTTP request/response to Allure report.

        Attaches:
            - Request URL with query parameters
            - Request headers (redacted)
            - Request body (redacted, if present)
            - cURL command for reproduction
            - Response status
            - Response body (truncated if too long)
        """
        full_url = str(response.request.url)
        params = kwargs.get("params")

        status_emoji = "✅" if response.status_code < 400 else "❌"
        step_title = f"{status_emoji} {method} {url} → {response.status_code}"

        with allure.step(step_title):
            allure.attach(
                full_url,
                name="Request URL",
                attachment_type=AttachmentType.TEXT
            )

            headers = kwargs.get("headers") or {}
            safe_headers = self._redact_headers(headers)
            if safe_headers:
                allure.attach(
                    json.dumps(safe_headers, ensure_ascii=False, indent=2, default=str),
                    name="Request Headers",
                    attachment_type=AttachmentType.JSON
                )

            body = kwargs.get("json")
            safe_body = self._redact_body(body)
            if safe_body:
                allure.attach(
                    json.dumps(safe_body, ensure_ascii=False, indent=2, default=str),
                    name="Request Body",
                    attachment_type=AttachmentType.JSON
                )

            if params:
                allure.attach(
                    json.dumps(params, ensure_ascii=False, indent=2, default=str),
                    name="Query Params",
                    attachment_type=AttachmentType.JSON
                )

            curl_cmd = self._build_curl(method, full_url, safe_headers, safe_body)
            allure.attach(
                curl_cmd,
                name="cURL Command",
                attachment_type=AttachmentType.TEXT
            )

            allure.attach(
                f"{status_emoji} {response.status_code}",
                name="Response Status",
                attachment_type=AttachmentType.TEXT
            )

            try:
                response_content = json.dumps(
                    response.json(), ensure_ascii=False, indent=2
                )
            except ValueError:
                response_content = response.text or "<empty>"

            if len(response_content) > MAX_RESPONSE_LENGTH:
                response_content = (
                    f"{response_content[:MAX_RESPONSE_LENGTH]}\n\n"
                    f"... [Truncated, full length: {len(response_content)} chars] ..."
                )

            allure.attach(
                response_content,
                name="Response Body",
                attachment_type=AttachmentType.JSON
            )

    def _redact_headers(self, headers: Any) -> Dict[str, str]:
        """
        Mask sensitive header values before logging.

        Accepts anything httpx takes as headers (mapping or pairs, str or
        bytes) and returns plain text so the result is always serializable.
        """
        pairs = headers.items() if isinstance(headers, Mapping) else headers
        masked = {}
        for raw_key, raw_value in pairs:
            key, value = _to_text(raw_key), _to_text(raw_value)
            if key.lower() in SENSITIVE_HEADERS:
                masked[key] = MASK
            else:
                masked[key] = value
        return masked

    def _redact_body(self, payload: Any) -> Any:
        """
        Recursively mask sensitive fields in request bodies.
        """
        if isinstance(payload, dict):
            redacted = {}
            for key, value in payload.items():
                if any(token in str(key).lower() for token in SENSITIVE_BODY_KEYS):
                    redacted[key] = MASK
                else:
                    redacted[key] = self._redact_body(value)
            return redacted
        if isinstance(payload, list):
            return [self._redact_body(item) for item in payload]
        return payload

    def _build_curl(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[Any],
    ) -> str:
        """
        Build cURL command for request reproduction.

        Expects headers and body that have already been redacted.
        """
        parts = [f"curl -X {method}"]

        for key, value in headers.items():
            parts.append(f"-H '{key}: {value}'")

        if body:
            body_json = json.dumps(body, ensure_ascii=False, default=str)
            parts.append(f"-d '{body_json}'")

        parts.append(f"'{url}'")

        return " \\\n  ".join(parts)


__all__ = [
    "HttpTransport",
    "HttpTransportError",
    "RateLimitExceeded",
]
