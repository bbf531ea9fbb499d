"""Top-level Proxmox VE client.

Owns one gateway and exposes it to resource modules, plus the
server-level calls that do not belong to any resource.
"""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from .gateway import ConnectionConfig, ProxmoxApiError, ProxmoxGateway

logger = structlog.get_logger(__name__)

VERSION_ENDPOINT = "/version"


class VersionInfo(BaseModel):
    """Server version as returned by ``/version``."""

    model_config = ConfigDict(extra="allow")

    version: str = ""
    release: str = ""
    repoid: str = ""


class ProxmoxClient:
    """Client for the Proxmox VE API.

    Resource modules issue their calls through :attr:`gateway`. Can be
    used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        logger: Any = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Validated connection configuration.
            logger: Optional structlog logger handed to the gateway.
            transport: Optional httpx transport handed to the gateway.
        """
        self.gateway = ProxmoxGateway(config, logger=logger, transport=transport)

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and close the gateway."""
        self.close()

    def close(self) -> None:
        """Close the gateway and release its HTTP client."""
        self.gateway.close()

    def authenticate(self) -> None:
        """Authenticate the underlying gateway."""
        logger.info(
            "Initializing authentication",
            base_url=self.gateway.config.base_url,
        )
        self.gateway.authenticate()

    def get_version(self) -> VersionInfo:
        """Fetch the server version.

        Returns:
            Version information; empty fields if the server sent no data.
        """
        version = self._fetch_version()
        return version if version is not None else VersionInfo()

    def test_connection(self) -> bool:
        """Check that the server answers an authenticated version request.

        Returns:
            True if ``/version`` returned version data, False if it returned
            nothing or the gateway raised an error.
        """
        try:
            version = self._fetch_version()
        except ProxmoxApiError:
            logger.exception("Connection test failed")
            return False
        if version is None:
            logger.warning("Connection test got no version data")
            return False
        logger.info("Connection test successful", version=version.version)
        return True

    def _fetch_version(self) -> VersionInfo | None:
        return self.gateway.get(VERSION_ENDPOINT, result_type=VersionInfo)
