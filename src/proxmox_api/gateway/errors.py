"""Exception hierarchy for the Proxmox API gateway.

Every failure is raised once, at the point of detection, as one of the
kinds below and propagated unchanged. All kinds derive from
:class:`ProxmoxApiError` so callers can catch any gateway error at once.
Secrets (passwords, tickets, tokens) are never included in messages.
"""

from collections.abc import Mapping
from typing import Any

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403


class ProxmoxApiError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        message: Human-readable description.
        status_code: HTTP status code, when the failure came from a response.
        errors: Error-detail mapping (field name to message) from the
            response envelope, empty when the server sent none.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: Mapping[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors: dict[str, Any] = dict(errors or {})

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.errors:
            details = ", ".join(f"{k}: {v}" for k, v in self.errors.items())
            parts.append(f"errors={{{details}}}")
        return " ".join(parts)


class ConfigurationError(ProxmoxApiError):
    """Raised for an invalid connection configuration."""


class GatewayDisposedError(ConfigurationError):
    """Raised when a closed gateway is used."""


class AuthenticationError(ProxmoxApiError):
    """Raised when credentials are rejected, malformed or cannot be exchanged."""


class AuthorizationError(ProxmoxApiError):
    """Raised when the server refuses the request (HTTP 403)."""


class ApiError(ProxmoxApiError):
    """Raised for any other non-success status or a failed response envelope."""


class SerializationError(ProxmoxApiError):
    """Raised when a response body cannot be decoded as an envelope.

    Attributes:
        raw_body: The undecodable response text, kept for diagnosis.
    """

    def __init__(self, message: str, raw_body: str, status_code: int | None = None):
        super().__init__(message, status_code=status_code)
        self.raw_body = raw_body


class NetworkError(ProxmoxApiError):
    """Raised when the transport fails (timeout, refused connection, DNS)."""


class AuthenticationNetworkError(NetworkError, AuthenticationError):
    """Raised when the credential exchange fails at the transport level.

    Catchable both as :class:`NetworkError` and :class:`AuthenticationError`.
    """


def classify_status(
    status_code: int,
    message: str,
    errors: Mapping[str, Any] | None = None,
) -> ProxmoxApiError:
    """Map a non-success HTTP status to an error kind.

    Pure function: the kind depends on the status code alone, the body
    only contributes optional error details.

    Args:
        status_code: HTTP status code of the response.
        message: Message for the resulting error.
        errors: Error-detail mapping found on the body, if any.

    Returns:
        AuthenticationError for 401, AuthorizationError for 403 and
        ApiError for every other code.
    """
    if status_code == HTTP_UNAUTHORIZED:
        return AuthenticationError(message, status_code=status_code, errors=errors)
    if status_code == HTTP_FORBIDDEN:
        return AuthorizationError(message, status_code=status_code, errors=errors)
    return ApiError(message, status_code=status_code, errors=errors)


def join_error_details(errors: Mapping[str, Any]) -> str:
    """Join error-detail values with ``"; "`` in mapping order."""
    if not errors:
        return "Unknown error"
    return "; ".join(str(value) for value in errors.values())
