"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

RESERVATION_COLUMNS = (
    "id",
    "customer_id",
    "room_id",
    "check_in",
    "check_out",
    "guests",
    "status",
    "total_cents",
    "deposit_cents",
    "payment_method",
    "card_last4",
    "card_exp_month",
    "card_exp_year",
    "special_requests",
    "is_company_booking",
    "company_id",
    "discount_percent",
    "created_at",
    "updated_at",
)

# Columns a caller may write; id and timestamps are owned by the database.
WRITABLE_COLUMNS = frozenset(RESERVATION_COLUMNS) - {"id", "created_at", "updated_at"}

_ID_COLUMNS = ("id", "customer_id", "room_id", "company_id")

_SELECT_COLUMNS = ", ".join(RESERVATION_COLUMNS)


def _row_to_dict(row: tuple) -> dict[str, Any]:
    reservation = dict(zip(RESERVATION_COLUMNS, row))
    for key in _ID_COLUMNS:
        if reservation[key] is not None:
            reservation[key] = str(reservation[key])
    return reservation


def _check_columns(fields: dict[str, Any]) -> None:
    unknown = set(fields) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown reservation columns: {sorted(unknown)}")


def insert_reservation(cur: PgCursor, fields: dict[str, Any]) -> dict[str, Any]:
    """Insert a reservation and return the stored row.

    Args:
        cur: Database cursor (within transaction).
        fields: Column values (subset of WRITABLE_COLUMNS).

    Returns:
        The created reservation dict.
    """
    _check_columns(fields)
    columns = list(fields)
    placeholders = ", ".join(["%s"] * len(columns))
    cur.execute(
        f"""
        INSERT INTO reservations ({", ".join(columns)})
        VALUES ({placeholders})
        RETURNING {_SELECT_COLUMNS}
        """,
        [fields[c] for c in columns],
    )
    return _row_to_dict(cur.fetchone())


def get_reservation(
    cur: PgCursor,
    reservation_id: str,
    *,
    lock: bool = False,
) -> dict[str, Any] | None:
    """Fetch a reservation by id, optionally locking it FOR UPDATE."""
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"SELECT {_SELECT_COLUMNS} FROM reservations WHERE id = %s{suffix}",
        (reservation_id,),
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def list_reservations(
    cur: PgCursor,
    *,
    customer_id: str | None = None,
    company_id: str | None = None,
) -> list[dict[str, Any]]:
    """List reservations newest first, optionally scoped to a customer or company.

    Args:
        cur: Database cursor.
        customer_id: Only reservations owned by this customer.
        company_id: Only company bookings made by this travel company.
    """
    conditions: list[str] = []
    params: list = []

    if customer_id is not None:
        conditions.append("customer_id = %s")
        params.append(customer_id)

    if company_id is not None:
        conditions.append("is_company_booking = true AND company_id = %s")
        params.append(company_id)

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    cur.execute(
        f"""
        SELECT {_SELECT_COLUMNS}
        FROM reservations
        {where_clause}
        ORDER BY created_at DESC
        """,
        params,
    )
    return [_row_to_dict(row) for row in cur.fetchall()]


def update_reservation(
    cur: PgCursor,
    reservation_id: str,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    """Apply a partial update and return the new row (None if not found)."""
    _check_columns(fields)
    sets = [f"{column} = %s" for column in fields] + ["updated_at = now()"]
    params = [*fields.values(), reservation_id]
    cur.execute(
        f"""
        UPDATE reservations
        SET {", ".join(sets)}
        WHERE id = %s
        RETURNING {_SELECT_COLUMNS}
        """,
        params,
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def delete_reservation(cur: PgCursor, reservation_id: str) -> bool:
    """Delete a reservation. Returns True if a row was removed."""
    cur.execute("DELETE FROM reservations WHERE id = %s", (reservation_id,))
    return cur.rowcount > 0


def list_no_show_candidates(
    cur: PgCursor,
    *,
    now: datetime,
    payment_method: str = "credit_card",
) -> list[str]:
    """Ids of no-show reservations paid by payment_method whose check-in has passed."""
    cur.execute(
        """
        SELECT id
        FROM reservations
        WHERE status = 'no-show'
          AND payment_method = %s
          AND check_in <= %s
        ORDER BY check_in
        """,
        (payment_method, now),
    )
    return [str(row[0]) for row in cur.fetchall()]
