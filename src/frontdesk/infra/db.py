"""psycopg2 connections and transactions.

All SQL runs inside txn(): one connection, one transaction, committed when
the block exits cleanly and rolled back when it raises. Row locks taken
with SELECT ... FOR UPDATE are held until that point.
"""

import os
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor, parse_dsn


def get_conn() -> PgConnection:
    """Open a connection to DATABASE_URL.

    DATABASE_URL may be a postgres:// URL or a libpq key=value DSN. When it
    carries no password, DB_PASSWORD (if set) is passed separately so the
    secret can live outside the DSN.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    db_password = os.environ.get("DB_PASSWORD")
    if db_password and not parse_dsn(dsn).get("password"):
        return psycopg2.connect(dsn, password=db_password)
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Run the block in one transaction and yield its cursor.

    A connection passed in is left open; otherwise one is opened for the
    block and closed afterwards.
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()
