"""Users repository - staff, customer and travel company accounts.

Uses raw SQL with psycopg2 (no ORM). password_hash is written here but
never selected back out.
"""

from __future__ import annotations

from typing import Any

from psycopg2.extensions import cursor as PgCursor

USER_COLUMNS = (
    "id",
    "external_subject",
    "name",
    "email",
    "phone",
    "role",
    "company_name",
    "created_at",
    "updated_at",
)

WRITABLE_COLUMNS = frozenset(
    {"external_subject", "name", "email", "phone", "role", "company_name", "password_hash"}
)

_SELECT_COLUMNS = ", ".join(USER_COLUMNS)


def _row_to_dict(row: tuple) -> dict[str, Any]:
    user = dict(zip(USER_COLUMNS, row))
    user["id"] = str(user["id"])
    return user


def get_user(cur: PgCursor, user_id: str) -> dict[str, Any] | None:
    cur.execute(f"SELECT {_SELECT_COLUMNS} FROM users WHERE id = %s", (user_id,))
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def get_user_by_subject(cur: PgCursor, external_subject: str) -> dict[str, Any] | None:
    """Resolve the user behind an identity-provider subject."""
    cur.execute(
        f"SELECT {_SELECT_COLUMNS} FROM users WHERE external_subject = %s",
        (external_subject,),
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def email_taken(cur: PgCursor, email: str, *, exclude_user_id: str | None = None) -> bool:
    if exclude_user_id is None:
        cur.execute("SELECT 1 FROM users WHERE lower(email) = lower(%s)", (email,))
    else:
        cur.execute(
            "SELECT 1 FROM users WHERE lower(email) = lower(%s) AND id <> %s",
            (email, exclude_user_id),
        )
    return cur.fetchone() is not None


def list_users(cur: PgCursor) -> list[dict[str, Any]]:
    cur.execute(f"SELECT {_SELECT_COLUMNS} FROM users ORDER BY created_at DESC")
    return [_row_to_dict(row) for row in cur.fetchall()]


def insert_user(cur: PgCursor, fields: dict[str, Any]) -> dict[str, Any]:
    columns = [c for c in fields if c in WRITABLE_COLUMNS]
    cur.execute(
        f"""
        INSERT INTO users ({", ".join(columns)})
        VALUES ({", ".join(["%s"] * len(columns))})
        RETURNING {_SELECT_COLUMNS}
        """,
        [fields[c] for c in columns],
    )
    return _row_to_dict(cur.fetchone())


def update_user(cur: PgCursor, user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    columns = [c for c in fields if c in WRITABLE_COLUMNS]
    sets = [f"{c} = %s" for c in columns] + ["updated_at = now()"]
    cur.execute(
        f"""
        UPDATE users SET {", ".join(sets)}
        WHERE id = %s
        RETURNING {_SELECT_COLUMNS}
        """,
        [*(fields[c] for c in columns), user_id],
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def delete_user(cur: PgCursor, user_id: str) -> bool:
    cur.execute("DELETE FROM users WHERE id = %s", (user_id,))
    return cur.rowcount > 0
