"""Database access layer using psycopg2.

Provides:
- get_conn(): Open a connection bounded by connect/statement timeouts
- txn(): Context manager for one scoped unit of store work
- fetchone/fetchall: Query helpers
- StoreError / StoreTimeoutError: the only exceptions callers need to know

Every psycopg2 failure raised inside txn() is translated into StoreError, and
the connection is closed on every exit path.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from omnibridge.config import DatabaseSettings
from omnibridge.observability.logging import get_logger
from omnibridge.observability.redaction import safe_log_context

logger = get_logger(__name__)


class StoreError(Exception):
    """Raised when the relational store fails (unreachable, rejected, broken)."""

    retryable = False


class StoreTimeoutError(StoreError):
    """Raised when a store connection or statement exceeded its timeout."""

    retryable = True


def _dsn_has_password(dsn: str) -> bool:
    try:
        return bool(psycopg2.extensions.parse_dsn(dsn).get("password"))
    except psycopg2.ProgrammingError:
        return False


def get_conn(settings: DatabaseSettings) -> PgConnection:
    """Open a new database connection.

    Args:
        settings: Connection settings (DSN, password fallback, timeouts).

    Returns:
        psycopg2 connection object.

    Raises:
        StoreError: If no DSN is configured or the connection fails.
        StoreTimeoutError: If the connect timeout expired.
    """
    if not settings.dsn:
        raise StoreError("DATABASE_URL not configured")

    kwargs: dict[str, Any] = {
        "connect_timeout": settings.connect_timeout,
        "options": f"-c statement_timeout={settings.statement_timeout_ms}",
    }
    if settings.password and not _dsn_has_password(settings.dsn):
        kwargs["password"] = settings.password

    try:
        return psycopg2.connect(settings.dsn, **kwargs)
    except psycopg2.Error as e:
        raise _translate(e) from e


@contextmanager
def txn(settings: DatabaseSettings) -> Iterator[PgCursor]:
    """Context manager for one scoped transaction.

    Opens a connection, yields a cursor, commits on success and rolls back on
    any exception. The connection is always closed.

    Example:
        with txn(settings.database) as cur:
            cur.execute("SELECT id FROM contacts WHERE telephone = %s", (phone,))
    """
    conn = get_conn(settings)
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except psycopg2.Error as e:
        _rollback_quietly(conn)
        raise _translate(e) from e
    except Exception:
        _rollback_quietly(conn)
        raise
    finally:
        conn.close()


def _rollback_quietly(conn: PgConnection) -> None:
    # A dead connection cannot roll back; the original error must win.
    try:
        conn.rollback()
    except psycopg2.Error as e:
        logger.warning(
            "rollback failed",
            extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
        )


def _translate(error: psycopg2.Error) -> StoreError:
    if isinstance(error, pg_errors.QueryCanceled):
        return StoreTimeoutError("statement timeout exceeded")
    if isinstance(error, psycopg2.OperationalError) and "timeout expired" in str(error):
        return StoreTimeoutError("connect timeout exceeded")
    return StoreError(f"store failure: {type(error).__name__}")


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Execute query and fetch one row (or None)."""
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    """Execute query and fetch all rows."""
    cur.execute(query, params)
    return cur.fetchall()
