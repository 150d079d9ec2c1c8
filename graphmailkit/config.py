"""Configuration for GraphMailKit, read from environment variables."""
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import ConfigurationError


TENANT_ID_ENV = "GRAPHMAILKIT_TENANT_ID"
CLIENT_ID_ENV = "GRAPHMAILKIT_CLIENT_ID"
CLIENT_SECRET_ENV = "GRAPHMAILKIT_CLIENT_SECRET"
MAILBOX_ADDRESS_ENV = "GRAPHMAILKIT_MAILBOX_ADDRESS"

DEFAULT_AUTHORITY_HOST = "login.microsoftonline.com"
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass
class Settings:
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    mailbox_address: Optional[str] = None
    authority_host: str = DEFAULT_AUTHORITY_HOST
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    def missing_credentials(self) -> List[str]:
        """Names of the four credential settings that are not set."""
        pairs = (
            (TENANT_ID_ENV, self.tenant_id),
            (CLIENT_ID_ENV, self.client_id),
            (CLIENT_SECRET_ENV, self.client_secret),
            (MAILBOX_ADDRESS_ENV, self.mailbox_address),
        )
        return [name for name, value in pairs if not value]

    def require_credentials(self) -> None:
        """Fail fast when any credential setting is missing."""
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                f"Missing configuration. Required settings: {', '.join(missing)}"
            )


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def load_settings() -> Settings:
    """
    Resolve settings from the environment.

    Environment variables:
        - GRAPHMAILKIT_TENANT_ID, GRAPHMAILKIT_CLIENT_ID, GRAPHMAILKIT_CLIENT_SECRET,
          GRAPHMAILKIT_MAILBOX_ADDRESS: app registration and mailbox
        - GRAPHMAILKIT_AUTHORITY_HOST: identity provider host (default login.microsoftonline.com)
        - GRAPHMAILKIT_HTTP_TIMEOUT: per-client connect/read timeout in seconds (default 30)
        - GRAPHMAILKIT_LOG_LEVEL: root log level (default INFO)
        - GRAPHMAILKIT_HOST, GRAPHMAILKIT_PORT: relay bind address (default 0.0.0.0:8000)
    """
    return Settings(
        tenant_id=os.getenv(TENANT_ID_ENV) or None,
        client_id=os.getenv(CLIENT_ID_ENV) or None,
        client_secret=os.getenv(CLIENT_SECRET_ENV) or None,
        mailbox_address=os.getenv(MAILBOX_ADDRESS_ENV) or None,
        authority_host=os.getenv("GRAPHMAILKIT_AUTHORITY_HOST") or DEFAULT_AUTHORITY_HOST,
        http_timeout=_float_env("GRAPHMAILKIT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        log_level=(os.getenv("GRAPHMAILKIT_LOG_LEVEL") or "INFO").upper(),
        host=os.getenv("GRAPHMAILKIT_HOST") or "0.0.0.0",
        port=_int_env("GRAPHMAILKIT_PORT", 8000),
    )


def configure_logging(level: Optional[str] = None) -> None:
    resolved = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )
