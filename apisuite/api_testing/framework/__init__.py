"""
================================================================================
API Testing Framework
================================================================================

Authenticated REST API automation components.

Modules:
    - config_loader: YAML configuration management
    - environment: Target environment selection and validation
    - log_setup: Loguru initialisation
    - http_transport: Async HTTP transport with retry and Allure logging
    - token_manager: JWT login, expiry tracking and logout
    - api_client: Authenticated per-verb request client
    - api_assertions: Response and JSON schema assertions

Author: Automation Team
License: MIT
================================================================================
"""

from .api_assertions import ApiAssertions, SchemaValidationResult, SchemaValidator
from .api_client import ApiClient, merge_headers
from .config_loader import ConfigLoader, ConfigurationError
from .environment import (
    Environment,
    get_current_environment,
    load_environment,
    validate_environment,
)
from .http_transport import HttpTransport, HttpTransportError, RateLimitExceeded
from .log_setup import init_logger
from .token_manager import (
    AuthenticationError,
    MissingCredentialsError,
    NoTokenAvailableError,
    TokenError,
    TokenExtractionError,
    TokenManager,
)

__all__ = [
    "ApiAssertions",
    "ApiClient",
    "AuthenticationError",
    "ConfigLoader",
    "ConfigurationError",
    "Environment",
    "HttpTransport",
    "HttpTransportError",
    "MissingCredentialsError",
    "NoTokenAvailableError",
    "RateLimitExceeded",
    "SchemaValidationResult",
    "SchemaValidator",
    "TokenError",
    "TokenExtractionError",
    "TokenManager",
    "get_current_environment",
    "init_logger",
    "load_environment",
    "merge_headers",
    "validate_environment",
]
