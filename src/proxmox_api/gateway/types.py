"""Data types for the Proxmox API gateway.

Pydantic models for the connection configuration, the authentication
session variants and the ``{data, errors, success}`` envelope every
response body is wrapped in.
"""

import enum
from typing import Annotated, Any, Generic, Literal, TypeAlias, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ConfigurationError

T = TypeVar("T")

DEFAULT_PORT = 8006
DEFAULT_REALM = "pam"
DEFAULT_TIMEOUT = 30.0

API_ROOT = "/api2/json"

MAX_PORT = 65535


class ConnectionConfig(BaseModel):
    """Immutable description of the target server and credentials.

    Exactly one of ``password`` (ticket scheme) or ``token`` (static API
    token scheme) must be set. Validation failures raise
    :class:`ConfigurationError`.
    """

    model_config = ConfigDict(frozen=True)

    host: str | None = None
    port: int = DEFAULT_PORT
    username: str | None = None
    realm: str = DEFAULT_REALM
    password: str | None = Field(default=None, repr=False)
    token: str | None = Field(default=None, repr=False)
    use_https: bool = True
    ignore_tls_errors: bool = False
    timeout: float = DEFAULT_TIMEOUT

    @model_validator(mode="after")
    def check_consistency(self) -> "ConnectionConfig":
        if not self.host or not self.host.strip():
            msg = "host cannot be empty"
            raise ConfigurationError(msg)
        if not self.username or not self.username.strip():
            msg = "username cannot be empty"
            raise ConfigurationError(msg)
        if not 0 < self.port <= MAX_PORT:
            msg = f"port must be between 1 and {MAX_PORT}, got {self.port}"
            raise ConfigurationError(msg)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ConfigurationError(msg)

        has_password = bool(self.password)
        has_token = bool(self.token)
        if not has_password and not has_token:
            msg = "either password or token must be provided"
            raise ConfigurationError(msg)
        if has_password and has_token:
            msg = "password and token are mutually exclusive"
            raise ConfigurationError(msg)
        return self

    @property
    def base_url(self) -> str:
        """Server URL, e.g. ``https://pve.example.com:8006``."""
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def api_url(self) -> str:
        """Root URL all endpoint paths are relative to."""
        return f"{self.base_url}{API_ROOT}"

    @property
    def user_id(self) -> str:
        """Fully qualified user, ``username@realm``."""
        return f"{self.username}@{self.realm}"


class TicketSession(BaseModel):
    """Session established by a ticket exchange."""

    model_config = ConfigDict(frozen=True)

    scheme: Literal["ticket"] = "ticket"
    ticket: str = Field(repr=False)
    csrf_token: str = Field(repr=False)

    def headers(self, mutating: bool) -> dict[str, str]:
        headers = {"Cookie": f"PVEAuthCookie={self.ticket}"}
        if mutating:
            headers["CSRFPreventionToken"] = self.csrf_token
        return headers


class TokenSession(BaseModel):
    """Session backed by a pre-issued API token; never refreshed."""

    model_config = ConfigDict(frozen=True)

    scheme: Literal["token"] = "token"
    token: str = Field(repr=False)

    def headers(self, mutating: bool) -> dict[str, str]:  # noqa: ARG002
        return {"Authorization": f"PVEAPIToken={self.token}"}


AuthSession: TypeAlias = Annotated[
    TicketSession | TokenSession,
    Field(discriminator="scheme"),
]


class GatewayState(str, enum.Enum):
    """Lifecycle states of a gateway."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    DISPOSED = "disposed"


class ResponseEnvelope(BaseModel, Generic[T]):
    """Wrapper every response body is expected to conform to.

    Proxmox usually omits ``success``; it is then inferred from the
    error map being empty. An explicit flag always wins. ``data`` must
    not be trusted when :attr:`is_success` is false.
    """

    data: T | None = None
    errors: dict[str, Any] = Field(default_factory=dict)
    success: bool | None = None

    @field_validator("errors", mode="before")
    @classmethod
    def empty_errors_for_null(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def is_success(self) -> bool:
        if self.success is not None:
            return self.success
        return not self.errors


class AuthTicket(BaseModel):
    """Payload of the ``/access/ticket`` response."""

    model_config = ConfigDict(populate_by_name=True)

    ticket: str | None = None
    csrf_token: str | None = Field(default=None, alias="CSRFPreventionToken")
    username: str | None = None
    cap: dict[str, Any] | None = None


class FormPayload(dict):
    """Pre-encoded form body, sent as ``application/x-www-form-urlencoded``.

    Passed through the request pipeline unmodified instead of being
    JSON-encoded.
    """
