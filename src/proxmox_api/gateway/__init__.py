"""Proxmox VE API gateway package.

Provides the authenticated HTTP transport shared by all resource modules:
connection configuration, ticket and API token authentication, per-request
security headers, response envelope decoding and error classification.

Exports:
    ProxmoxGateway: Authenticated transport with the four verb calls.
    ConnectionConfig: Validated, immutable connection settings.
    types: Module containing the Pydantic models for sessions and envelopes.
    errors: Module containing the exception hierarchy.
"""

from . import errors, types
from .client import ProxmoxGateway, validate_api_token
from .errors import (
    ApiError,
    AuthenticationError,
    AuthenticationNetworkError,
    AuthorizationError,
    ConfigurationError,
    GatewayDisposedError,
    NetworkError,
    ProxmoxApiError,
    SerializationError,
)
from .types import (
    DEFAULT_PORT,
    DEFAULT_REALM,
    DEFAULT_TIMEOUT,
    ConnectionConfig,
    FormPayload,
    GatewayState,
    ResponseEnvelope,
    TicketSession,
    TokenSession,
)

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_REALM",
    "DEFAULT_TIMEOUT",
    "ApiError",
    "AuthenticationError",
    "AuthenticationNetworkError",
    "AuthorizationError",
    "ConfigurationError",
    "ConnectionConfig",
    "FormPayload",
    "GatewayDisposedError",
    "GatewayState",
    "NetworkError",
    "ProxmoxApiError",
    "ProxmoxGateway",
    "ResponseEnvelope",
    "SerializationError",
    "TicketSession",
    "TokenSession",
    "errors",
    "types",
    "validate_api_token",
]
