"""Configuration loading and logging setup for the Proxmox API client."""

import json
import logging
import os
import pathlib

import pydantic
import structlog

from .client import ProxmoxClient
from .gateway import ConnectionConfig

CONFIG_ENV_VAR = "PROXMOX_API_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ClientSettings(pydantic.BaseModel):
    """Settings file contents for the Proxmox API client."""

    connection: ConnectionConfig = pydantic.Field(
        description="Target server and credentials",
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog to print logfmt lines for the client and gateway.

    Gateway diagnostics carry bound ``host``, ``method`` and ``path`` keys;
    events below ``log_level_name`` are dropped. Unknown level names fall
    back to INFO.
    """
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> ClientSettings:
    """Load settings from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the connection section is inconsistent.
        pydantic.ValidationError: If a field has the wrong type.
    """
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ClientSettings(**data)


def create_client(config_path: str | None = None) -> ProxmoxClient:
    """Create a client using a config path or the environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "/config.json")
    settings = load_config(resolved_path)
    configure_logging(settings.log_level)
    logger.info("Creating client", base_url=settings.connection.base_url)
    return ProxmoxClient(settings.connection)
