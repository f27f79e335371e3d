"""Initial front desk schema (SQL-only).

users, rooms, reservations (with the room overlap exclusion constraint)
and billings.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "001_initial_schema.sql"


def upgrade() -> None:
    op.get_bind().exec_driver_sql(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    for table in ("billings", "reservations", "rooms", "users"):
        op.execute(f"DROP TABLE IF EXISTS {table}")
    # Extensions are kept: other database objects may depend on them.
