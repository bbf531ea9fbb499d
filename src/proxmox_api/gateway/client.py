"""Proxmox VE API gateway.

Provides the authenticated HTTP transport every resource module goes
through: credential-scheme selection, session establishment, per-request
security headers, response envelope decoding and error classification.
"""

import time
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError
from pydantic_core import to_jsonable_python

from .errors import (
    ApiError,
    AuthenticationError,
    AuthenticationNetworkError,
    GatewayDisposedError,
    NetworkError,
    ProxmoxApiError,
    SerializationError,
    classify_status,
    join_error_details,
)
from .types import (
    AuthSession,
    AuthTicket,
    ConnectionConfig,
    FormPayload,
    GatewayState,
    ResponseEnvelope,
    TicketSession,
    TokenSession,
)

USER_AGENT = "proxmox-api-client/0.1.0"

TICKET_ENDPOINT = "/access/ticket"

# Separates "user@realm!tokenid" from the token secret.
TOKEN_SEPARATOR = "="

MUTATING_METHODS = frozenset({"POST", "PUT", "DELETE"})


def validate_api_token(token: str) -> None:
    """Check that a static API token has the ``user@realm!tokenid=secret`` shape.

    Only the identifier/secret separator is checked; the server decides
    whether the token is actually valid.

    Args:
        token: The configured API token.

    Raises:
        AuthenticationError: If the token lacks the separator or either
            side of it is empty.
    """
    parts = token.split(TOKEN_SEPARATOR)
    if len(parts) != 2 or not all(part.strip() for part in parts):  # noqa: PLR2004
        msg = "Invalid API token format. Expected format: 'user@realm!tokenid=secret'"
        raise AuthenticationError(msg)


def _encode_body(body: Any) -> dict[str, Any]:
    """Build the httpx content arguments for a request body."""
    if body is None:
        return {}
    if isinstance(body, FormPayload):
        return {"data": dict(body)}
    if isinstance(body, BaseModel):
        return {"json": body.model_dump(mode="json", exclude_none=True)}
    return {"json": to_jsonable_python(body)}


def _extract_error_details(text: str) -> dict[str, Any]:
    """Return the ``errors`` map of a body if it parses as an envelope."""
    try:
        envelope = ResponseEnvelope[Any].model_validate_json(text)
    except ValidationError:
        return {}
    return envelope.errors


class ProxmoxGateway:
    """Authenticated transport for the Proxmox VE REST API.

    Call :meth:`authenticate` once, then issue verb calls. Each call
    performs exactly one HTTP exchange; nothing is retried or cached and
    expired sessions are not refreshed (a later 401 surfaces as
    :class:`AuthenticationError`).

    Security headers are built per call from a snapshot of the current
    session, so concurrent calls never share mutable header state.
    Re-authentication swaps the session; in-flight calls finish with the
    credentials they started with.

    Can be used as a context manager; a closed gateway rejects every call
    with :class:`GatewayDisposedError`.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        logger: Any = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the gateway.

        Args:
            config: Validated connection configuration.
            logger: structlog logger to emit diagnostics to (default: the
                module logger).
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
                in tests.
        """
        self.config = config
        if logger is None:
            logger = structlog.get_logger(__name__)
        self._logger = logger.bind(host=config.host)
        self._session: AuthSession | None = None
        self._state = GatewayState.UNAUTHENTICATED

        self._client = httpx.Client(
            base_url=config.api_url,
            headers={
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
            timeout=config.timeout,
            verify=not config.ignore_tls_errors,
            transport=transport,
        )

    @property
    def state(self) -> GatewayState:
        """Current lifecycle state."""
        return self._state

    @property
    def session(self) -> AuthSession | None:
        """Current authentication session, None until authenticated."""
        return self._session

    @property
    def is_authenticated(self) -> bool:
        """Whether the last authenticate() call succeeded."""
        return self._state is GatewayState.AUTHENTICATED

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and release the HTTP client."""
        self.close()

    def close(self) -> None:
        """Release the HTTP client. Further calls raise GatewayDisposedError."""
        if self._state is GatewayState.DISPOSED:
            return
        self._client.close()
        self._session = None
        self._state = GatewayState.DISPOSED
        self._logger.debug("Gateway closed")

    def _ensure_open(self) -> None:
        if self._state is GatewayState.DISPOSED:
            msg = "Gateway has been closed"
            raise GatewayDisposedError(msg)

    def authenticate(self) -> None:
        """Establish a session using the configured credentials.

        With an API token the token is validated and stored without any
        network call. With a password a ticket and CSRF-prevention token
        are requested from the server. Any previous session is replaced;
        on failure the gateway is left unauthenticated.

        Raises:
            AuthenticationError: If the token is malformed or the ticket
                exchange fails. Transport failures raise
                AuthenticationNetworkError, which is also a NetworkError.
            GatewayDisposedError: If the gateway has been closed.
        """
        self._ensure_open()
        self._state = GatewayState.AUTHENTICATING
        self._logger.info("Authenticating", user=self.config.user_id)

        try:
            if self.config.token:
                session = self._authenticate_with_token(self.config.token)
            else:
                session = self._authenticate_with_password()
        except Exception:
            self._session = None
            self._state = GatewayState.UNAUTHENTICATED
            raise

        self._session = session
        self._state = GatewayState.AUTHENTICATED
        self._logger.info("Authenticated", scheme=session.scheme)

    def _authenticate_with_token(self, token: str) -> TokenSession:
        validate_api_token(token)
        return TokenSession(token=token)

    def _authenticate_with_password(self) -> TicketSession:
        form = FormPayload(
            username=self.config.user_id,
            password=self.config.password,
        )
        try:
            ticket = self._request(
                "POST",
                TICKET_ENDPOINT,
                session=None,
                body=form,
                result_type=AuthTicket,
            )
        except NetworkError as exc:
            msg = f"Network error during authentication: {exc.message}"
            raise AuthenticationNetworkError(msg) from exc
        except ProxmoxApiError as exc:
            msg = f"Authentication failed: {exc.message}"
            raise AuthenticationError(
                msg,
                status_code=exc.status_code,
                errors=exc.errors,
            ) from exc

        if ticket is None or not ticket.ticket or not ticket.csrf_token:
            msg = "Authentication failed: response carried no ticket"
            raise AuthenticationError(msg)
        return TicketSession(ticket=ticket.ticket, csrf_token=ticket.csrf_token)

    def get(
        self,
        path: str,
        result_type: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Read a resource (GET).

        Args:
            path: Endpoint path relative to the API root (e.g., "/nodes").
            result_type: Type to decode the envelope ``data`` into; raw
                JSON values are returned when omitted.
            params: Optional query parameters.

        Returns:
            Decoded ``data``, or None for an empty body or absent data.
        """
        return self._request(
            "GET",
            path,
            session=self._session,
            params=params,
            result_type=result_type,
        )

    def create(self, path: str, body: Any = None, result_type: Any = None) -> Any:
        """Create a resource (POST). See :meth:`get` for arguments."""
        return self._request(
            "POST",
            path,
            session=self._session,
            body=body,
            result_type=result_type,
        )

    def replace(self, path: str, body: Any = None, result_type: Any = None) -> Any:
        """Replace or update a resource (PUT)."""
        return self._request(
            "PUT",
            path,
            session=self._session,
            body=body,
            result_type=result_type,
        )

    def remove(self, path: str, result_type: Any = None) -> Any:
        """Delete a resource (DELETE)."""
        return self._request(
            "DELETE",
            path,
            session=self._session,
            result_type=result_type,
        )

    def _request(
        self,
        method: str,
        path: str,
        session: AuthSession | None,
        body: Any = None,
        params: dict[str, Any] | None = None,
        result_type: Any = None,
    ) -> Any:
        """Send one request and interpret the response.

        Args:
            method: HTTP method.
            path: Endpoint path relative to the API root.
            session: Session snapshot to build security headers from.
            body: Request body; FormPayload is sent form-encoded, anything
                else as JSON.
            params: Optional query parameters.
            result_type: Type of the envelope ``data``.

        Raises:
            NetworkError: If the transport fails or the body cannot be read.
            AuthenticationError: On HTTP 401.
            AuthorizationError: On HTTP 403.
            ApiError: On any other non-success status or a failed envelope.
            SerializationError: If the body is not a valid envelope.
        """
        self._ensure_open()

        headers = {}
        if session is not None:
            headers = session.headers(mutating=method in MUTATING_METHODS)
        log = self._logger.bind(method=method, path=path)
        start_time = time.time()

        try:
            log.debug("Making API request", params=params or {})
            response = self._client.request(
                method,
                path,
                params=params,
                headers=headers,
                **_encode_body(body),
            )
        except httpx.RequestError as exc:
            duration = time.time() - start_time
            log.exception("API request failed", duration_seconds=round(duration, 3))
            msg = f"{method} {path} failed: {exc}"
            raise NetworkError(msg) from exc

        duration = time.time() - start_time
        log.debug(
            "API request completed",
            status_code=response.status_code,
            duration_seconds=round(duration, 3),
        )
        return self._interpret(response, result_type, log)

    def _interpret(self, response: httpx.Response, result_type: Any, log: Any) -> Any:
        text = response.text

        if not response.is_success:
            errors = _extract_error_details(text)
            msg = f"API request failed with status {response.status_code}"
            if response.reason_phrase:
                msg = f"{msg}: {response.reason_phrase}"
            log.error(
                "API error response",
                status_code=response.status_code,
                errors=errors,
            )
            raise classify_status(response.status_code, msg, errors)

        if not text.strip():
            return None

        envelope_type = ResponseEnvelope[result_type or Any]
        try:
            envelope = envelope_type.model_validate_json(text)
        except ValidationError as exc:
            log.error("Failed to decode API response", body_length=len(text))
            msg = "Failed to decode API response"
            raise SerializationError(
                msg,
                raw_body=text,
                status_code=response.status_code,
            ) from exc

        if not envelope.is_success:
            detail = join_error_details(envelope.errors)
            log.error("API returned errors", errors=envelope.errors)
            msg = f"API returned errors: {detail}"
            raise ApiError(
                msg,
                status_code=response.status_code,
                errors=envelope.errors,
            )

        return envelope.data
