"""psycopg2 connection and transaction helpers.

The bot keeps no pool: each `txn()` without an explicit connection opens one,
runs a single short transaction and closes it. Dedupe receipts and rate
windows are therefore committed before any outbound WhatsApp call.
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

APPLICATION_NAME = "cpcbot"
DEFAULT_CONNECT_TIMEOUT = 5


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return any(part.startswith("password=") for part in dsn.split())


def connect_kwargs(dsn: str) -> dict[str, Any]:
    """Extra psycopg2.connect() arguments for `dsn`.

    DB_PASSWORD is only applied when the DSN itself carries no password, so a
    secret injected next to a password-less URL still works. DB_CONNECT_TIMEOUT
    bounds how long a webhook waits for Postgres.
    """
    kwargs: dict[str, Any] = {
        "application_name": APPLICATION_NAME,
        "connect_timeout": int(os.environ.get("DB_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)),
    }
    password = os.environ.get("DB_PASSWORD", "")
    if password and not _dsn_has_password(dsn):
        kwargs["password"] = password
    return kwargs


def get_conn() -> PgConnection:
    """Open a new connection from DATABASE_URL.

    Raises:
        RuntimeError: DATABASE_URL is unset.
        ValueError: DB_CONNECT_TIMEOUT is not an integer.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")
    return psycopg2.connect(dsn, **connect_kwargs(dsn))


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Yield a cursor; commit on clean exit, roll back and re-raise otherwise.

    A connection passed in by the caller is left open.
    """
    owned = conn is None
    if owned:
        conn = get_conn()
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owned:
            conn.close()


def fetchone(
    cur: PgCursor, query: str, params: Sequence[Any] | None = None
) -> tuple[Any, ...] | None:
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor, query: str, params: Sequence[Any] | None = None
) -> list[tuple[Any, ...]]:
    cur.execute(query, params)
    return cur.fetchall()
