"""Bridge configuration.

All components receive a BridgeSettings instance at construction time.
Nothing reads the process environment after startup: `BridgeSettings.from_env()`
is the single place where env vars are resolved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

DEFAULT_GRAPH_API_BASE = "https://graph.facebook.com/v19.0"

DEFAULT_APOLOGY_TEXT = (
    "Désolé, une erreur technique est survenue. Notre équipe en a été informée."
)


@dataclass(frozen=True)
class DatabaseSettings:
    """PostgreSQL connection settings.

    Attributes:
        dsn: libpq DSN or postgres:// URL.
        password: Injected when the DSN carries no password.
        connect_timeout: Seconds to wait for the TCP/auth handshake.
        statement_timeout_ms: Server-side bound for every statement.
    """

    dsn: str = ""
    password: str | None = None
    connect_timeout: int = 5
    statement_timeout_ms: int = 5000


@dataclass(frozen=True)
class WhatsAppSettings:
    """WhatsApp Cloud API credentials."""

    access_token: str = ""
    phone_number_id: str = ""

    def is_configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)


@dataclass(frozen=True)
class MessengerSettings:
    """Messenger Send API credentials (page-scoped)."""

    page_access_token: str = ""

    def is_configured(self) -> bool:
        return bool(self.page_access_token)


@dataclass(frozen=True)
class BridgeSettings:
    """Top-level configuration for the conversational bridge."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)
    messenger: MessengerSettings = field(default_factory=MessengerSettings)
    graph_api_base: str = DEFAULT_GRAPH_API_BASE
    http_timeout: float = 5.0
    default_parent_id: int = 1
    default_contact_type: str = "prospect"
    product_list_limit: int = 5
    currency: str = "FCFA"
    apology_text: str = DEFAULT_APOLOGY_TEXT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BridgeSettings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ

        database = DatabaseSettings(
            dsn=env.get("DATABASE_URL", ""),
            password=env.get("DB_PASSWORD") or None,
            connect_timeout=_int_env(env, "DB_CONNECT_TIMEOUT", 5),
            statement_timeout_ms=_int_env(env, "DB_STATEMENT_TIMEOUT_MS", 5000),
        )

        return cls(
            database=database,
            whatsapp=WhatsAppSettings(
                access_token=env.get("WHATSAPP_TOKEN", ""),
                phone_number_id=env.get("WHATSAPP_PHONE_ID", ""),
            ),
            messenger=MessengerSettings(
                page_access_token=env.get("MESSENGER_TOKEN", ""),
            ),
            graph_api_base=env.get("FB_GRAPH", DEFAULT_GRAPH_API_BASE).rstrip("/"),
            http_timeout=_float_env(env, "HTTP_TIMEOUT", 5.0),
            default_parent_id=_int_env(env, "CONTACT_PARENT_ID", 1),
            currency=env.get("CURRENCY", "FCFA"),
            apology_text=env.get("APOLOGY_TEXT", DEFAULT_APOLOGY_TEXT),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
