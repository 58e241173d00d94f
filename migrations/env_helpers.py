"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without alembic.context.
The bridge connects with DATABASE_URL through psycopg2, which accepts both
libpq key=value DSNs and postgres:// URLs; SQLAlchemy needs a URL with an
explicit driver, so both forms are parsed and re-rendered here.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL


def _dsn_to_url(dsn: str, fallback_password: str = "") -> str:
    params = parse_dsn(dsn)
    host = params.get("host") or "localhost"
    port = params.get("port")

    query: dict[str, str] = {}
    if host.startswith("/"):
        # Unix socket
        query["host"] = host
        host = None
        port = None

    url = URL.create(
        "postgresql+psycopg2",
        username=params.get("user") or None,
        password=params.get("password") or fallback_password or None,
        host=host,
        port=int(port) if port else None,
        database=params.get("dbname") or None,
        query=query,
    )
    return url.render_as_string(hide_password=False)


def _get_database_url() -> str:
    """Return DATABASE_URL as a SQLAlchemy psycopg2 URL.

    Raises:
        RuntimeError: If DATABASE_URL is unset.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if dsn.startswith("postgres://"):
        dsn = "postgresql://" + dsn[len("postgres://"):]
    return _dsn_to_url(dsn, os.environ.get("DB_PASSWORD", ""))
