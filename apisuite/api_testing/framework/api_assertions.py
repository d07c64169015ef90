"""
================================================================================
API Response Assertions
================================================================================

Reusable checks for API responses: status codes, headers, JSON paths,
array sizes, response time and JSON Schema conformance. Every check runs as
an Allure step and raises AssertionError with a readable message, so tests
read as a flat list of expectations.

Schema validation is delegated to the jsonschema library; the validator
class for a schema is picked from its "$schema" keyword (Draft 2020-12 when
absent).

Author: Automation Team
License: MIT
================================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import allure
import httpx
from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for
from loguru import logger


@dataclass
class SchemaValidationResult:
    """
    Outcome of validating one payload against one schema.

    Attributes:
        valid: True when the payload conforms
        errors: One "<path> <message>" line per violation, "root" for the top level
    """
    valid: bool
    errors: List[str] = field(default_factory=list)


class SchemaValidator:
    """Collects every JSON Schema violation rather than stopping at the first."""

    def validate(self, payload: Any, schema: Dict[str, Any]) -> SchemaValidationResult:
        validator_cls = validator_for(schema, default=Draft202012Validator)
        try:
            validator_cls.check_schema(schema)
        except SchemaError as e:
            raise ValueError(f"Invalid JSON schema: {e.message}") from e

        validator = validator_cls(schema)
        errors = sorted(
            f"{self._format_path(error.absolute_path)} {error.message}"
            for error in validator.iter_errors(payload)
        )
        return SchemaValidationResult(valid=not errors, errors=errors)

    @staticmethod
    def _format_path(path) -> str:
        parts = [str(p) for p in path]
        return "/" + "/".join(parts) if parts else "root"


class ApiAssertions:
    """
    Assertion helpers for httpx responses.

    Example:
        assertions = ApiAssertions()
        response = await api_client.get("/users/jane")
        assertions.assert_status_code(response, 200)
        assertions.assert_schema(response, USER_SCHEMA)
        assertions.assert_json_path(response, "roles[0]", "ROLE_ADMIN")
    """

    def __init__(self, validator: Optional[SchemaValidator] = None):
        self.validator = validator or SchemaValidator()

    @allure.step("Status code should be {expected_status}")
    def assert_status_code(self, response: httpx.Response, expected_status: int) -> None:
        actual = response.status_code
        assert actual == expected_status, (
            f"Expected status {expected_status}, got {actual}: {response.text[:500]}"
        )

    @allure.step("Response time should be under {max_ms}ms")
    def assert_response_time(self, response: httpx.Response, max_ms: float) -> None:
        elapsed_ms = response.elapsed.total_seconds() * 1000
        logger.debug(f"Response time: {elapsed_ms:.1f}ms (limit {max_ms}ms)")
        assert elapsed_ms < max_ms, (
            f"Response took {elapsed_ms:.1f}ms, expected under {max_ms}ms"
        )

    @allure.step("Response should match JSON schema")
    def assert_schema(self, response: httpx.Response, schema: Dict[str, Any]) -> None:
        result = self.validator.validate(response.json(), schema)
        if not result.valid:
            raise AssertionError(
                f"Schema validation failed: {', '.join(result.errors)}"
            )

    @allure.step("Response headers should contain expected values")
    def assert_headers(self, response: httpx.Response, expected_headers: Dict[str, str]) -> None:
        mismatches = []
        for key, value in expected_headers.items():
            actual = response.headers.get(key)
            if actual != value:
                mismatches.append(f"{key}: expected '{value}', got '{actual}'")
        assert not mismatches, "Header mismatch:\n" + "\n".join(mismatches)

    @allure.step("JSON path '{path}' should equal {expected_value}")
    def assert_json_path(self, response: httpx.Response, path: str, expected_value: Any) -> None:
        try:
            actual = self._get_nested_value(response.json(), path)
        except (KeyError, IndexError, TypeError) as e:
            raise AssertionError(f"Path '{path}' not found in response: {e!r}") from e
        assert actual == expected_value, (
            f"Path '{path}': expected '{expected_value}', got '{actual}'"
        )

    @allure.step("Response array should have {expected_length} items")
    def assert_array_length(self, response: httpx.Response, expected_length: int) -> None:
        body = response.json()
        assert isinstance(body, list), f"Expected a JSON array, got {type(body).__name__}"
        assert len(body) == expected_length, (
            f"Expected {expected_length} items, got {len(body)}"
        )

    def _get_nested_value(self, data: Any, key_path: str) -> Any:
        """
        Get a value using dot notation, with "items[0]" style indexing.

        Raises:
            KeyError / IndexError / TypeError: If the path doesn't exist
        """
        current = data
        for key in key_path.split("."):
            array_match = re.fullmatch(r"(\w*)\[(\d+)\]", key)
            if array_match:
                field_name, index = array_match.group(1), int(array_match.group(2))
                if field_name:
                    current = current[field_name]
                current = current[index]
            else:
                current = current[key]
        return current


__all__ = [
    "ApiAssertions",
    "SchemaValidationResult",
    "SchemaValidator",
]
