"""Billing repository - persistence for billing records.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

import json
from typing import Any

from psycopg2.extensions import cursor as PgCursor

BILLING_COLUMNS = (
    "id",
    "reservation_id",
    "customer_id",
    "room_charges_cents",
    "additional_charges",
    "total_cents",
    "paid_cents",
    "payment_method",
    "payment_status",
    "created_at",
    "updated_at",
)

WRITABLE_COLUMNS = frozenset(
    {
        "room_charges_cents",
        "additional_charges",
        "total_cents",
        "paid_cents",
        "payment_method",
        "payment_status",
    }
)

_SELECT_COLUMNS = ", ".join(BILLING_COLUMNS)


def _row_to_dict(row: tuple) -> dict[str, Any]:
    record = dict(zip(BILLING_COLUMNS, row))
    for key in ("id", "reservation_id", "customer_id"):
        if record[key] is not None:
            record[key] = str(record[key])
    charges = record["additional_charges"]
    if isinstance(charges, str):
        charges = json.loads(charges)
    record["additional_charges"] = charges or []
    return record


def find_billing_by_reservation(cur: PgCursor, reservation_id: str) -> dict[str, Any] | None:
    """Return the first billing record for a reservation, if any."""
    cur.execute(
        f"""
        SELECT {_SELECT_COLUMNS}
        FROM billings
        WHERE reservation_id = %s
        ORDER BY created_at
        LIMIT 1
        """,
        (reservation_id,),
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def insert_billing(
    cur: PgCursor,
    *,
    reservation_id: str,
    customer_id: str,
    room_charges_cents: int,
    additional_charges: list[dict],
    total_cents: int,
    paid_cents: int,
    payment_method: str,
    payment_status: str,
) -> dict[str, Any]:
    """Insert a billing record and return it."""
    cur.execute(
        f"""
        INSERT INTO billings (
            reservation_id, customer_id, room_charges_cents, additional_charges,
            total_cents, paid_cents, payment_method, payment_status
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING {_SELECT_COLUMNS}
        """,
        (
            reservation_id,
            customer_id,
            room_charges_cents,
            json.dumps(additional_charges),
            total_cents,
            paid_cents,
            payment_method,
            payment_status,
        ),
    )
    return _row_to_dict(cur.fetchone())


def get_billing(cur: PgCursor, billing_id: str) -> dict[str, Any] | None:
    cur.execute(f"SELECT {_SELECT_COLUMNS} FROM billings WHERE id = %s", (billing_id,))
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def list_billings(cur: PgCursor, *, customer_id: str | None = None) -> list[dict[str, Any]]:
    """List billing records newest first, optionally for one customer."""
    if customer_id is None:
        cur.execute(f"SELECT {_SELECT_COLUMNS} FROM billings ORDER BY created_at DESC")
    else:
        cur.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM billings
            WHERE customer_id = %s
            ORDER BY created_at DESC
            """,
            (customer_id,),
        )
    return [_row_to_dict(row) for row in cur.fetchall()]


def update_billing(cur: PgCursor, billing_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Apply a partial update to a billing record (None if not found)."""
    columns = [c for c in fields if c in WRITABLE_COLUMNS]
    values = [
        json.dumps(fields[c]) if c == "additional_charges" else fields[c]
        for c in columns
    ]
    sets = [f"{c} = %s" for c in columns] + ["updated_at = now()"]
    cur.execute(
        f"""
        UPDATE billings SET {", ".join(sets)}
        WHERE id = %s
        RETURNING {_SELECT_COLUMNS}
        """,
        [*values, billing_id],
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None
