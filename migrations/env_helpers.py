"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without an alembic context.
DATABASE_URL may be a URL or a libpq key=value DSN (the same values
frontdesk.infra.db accepts); DB_PASSWORD fills in a missing password.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL, make_url

DRIVER = "postgresql+psycopg2"


def libpq_dsn_to_url(dsn: str) -> URL:
    """Convert a libpq DSN to a SQLAlchemy URL.

    A host starting with "/" is a unix socket directory and is passed as the
    host query parameter.
    """
    params = parse_dsn(dsn)
    password = params.get("password") or os.environ.get("DB_PASSWORD") or None
    host = params.get("host", "localhost")

    query = {}
    if host.startswith("/"):
        query["host"] = host
        host = None

    return URL.create(
        DRIVER,
        username=params.get("user"),
        password=password,
        host=host,
        port=int(params.get("port", 5432)) if host else None,
        database=params.get("dbname"),
        query=query,
    )


def normalize_url(raw: str) -> URL:
    """Force the psycopg2 driver and inject DB_PASSWORD when the URL has none."""
    url = make_url(raw)
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername=DRIVER)
    if not url.password and os.environ.get("DB_PASSWORD"):
        url = url.set(password=os.environ["DB_PASSWORD"])
    return url


def get_database_url() -> str:
    """SQLAlchemy URL string for DATABASE_URL, password included."""
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    url = normalize_url(raw) if "://" in raw else libpq_dsn_to_url(raw)
    return url.render_as_string(hide_password=False)
