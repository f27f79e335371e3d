"""Tests for database layer."""

import os
from unittest.mock import MagicMock, patch

import pytest


class TestGetConnPasswordFallback:
    """Tests for DB_PASSWORD fallback in get_conn() - no real DB needed."""

    @pytest.mark.parametrize(
        "dsn",
        ["dbname=frontdesk user=u host=h port=5432", "postgres://u@h/frontdesk"],
    )
    def test_fallback_when_dsn_has_no_password(self, dsn):
        from frontdesk.infra.db import get_conn

        env = {"DATABASE_URL": dsn, "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("frontdesk.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(dsn, password="from-env")

    @pytest.mark.parametrize(
        "dsn",
        ["dbname=frontdesk user=u password=from-dsn host=h", "postgres://u:p@h/frontdesk"],
    )
    def test_dsn_password_wins(self, dsn):
        from frontdesk.infra.db import get_conn

        env = {"DATABASE_URL": dsn, "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("frontdesk.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(dsn)

    def test_raises_without_database_url(self):
        from frontdesk.infra.db import get_conn

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxn:
    """txn() against a mocked connection."""

    def test_commits_and_closes_owned_connection(self):
        from frontdesk.infra.db import txn

        conn = MagicMock()
        with patch("frontdesk.infra.db.get_conn", return_value=conn):
            with txn() as cur:
                cur.execute("SELECT 1")

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    def test_rolls_back_on_error(self):
        from frontdesk.infra.db import txn

        conn = MagicMock()
        with patch("frontdesk.infra.db.get_conn", return_value=conn):
            with pytest.raises(ValueError):
                with txn():
                    raise ValueError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

    def test_borrowed_connection_left_open(self):
        from frontdesk.infra.db import txn

        conn = MagicMock()
        with txn(conn):
            pass

        conn.commit.assert_called_once()
        conn.close.assert_not_called()


# Skip integration tests if DATABASE_URL is not set
_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
class TestTxnIntegration:
    def test_commits_on_success(self):
        from frontdesk.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with txn(conn) as cur:
                cur.execute("CREATE TEMP TABLE test_txn (id serial, val text)")
                cur.execute("INSERT INTO test_txn (val) VALUES (%s)", ("kept",))
            with conn.cursor() as cur:
                cur.execute("SELECT val FROM test_txn")
                assert cur.fetchall() == [("kept",)]
        finally:
            conn.close()
