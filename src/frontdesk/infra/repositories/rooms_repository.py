"""Rooms repository - the room directory consumed by the reservation engine.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

ROOM_COLUMNS = (
    "id",
    "number",
    "type",
    "capacity",
    "price_cents",
    "amenities",
    "status",
    "floor",
    "created_at",
    "updated_at",
)

WRITABLE_COLUMNS = frozenset({"number", "type", "capacity", "price_cents", "amenities", "status", "floor"})

_SELECT_COLUMNS = ", ".join(ROOM_COLUMNS)

# Reservation statuses that still hold a room.
_HOLDING_FILTER = "status NOT IN ('cancelled', 'checked-out')"


def _row_to_dict(row: tuple) -> dict[str, Any]:
    room = dict(zip(ROOM_COLUMNS, row))
    room["id"] = str(room["id"])
    room["amenities"] = list(room["amenities"] or [])
    return room


def get_room(cur: PgCursor, room_id: str, *, lock: bool = False) -> dict[str, Any] | None:
    """Fetch a room by id.

    With lock=True the row is locked FOR UPDATE, which serialises
    reservation creation per room.
    """
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(f"SELECT {_SELECT_COLUMNS} FROM rooms WHERE id = %s{suffix}", (room_id,))
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def set_room_status(cur: PgCursor, room_id: str, status: str) -> bool:
    """Set a room's status. Returns False if the room no longer exists."""
    cur.execute(
        "UPDATE rooms SET status = %s, updated_at = now() WHERE id = %s",
        (status, room_id),
    )
    return cur.rowcount > 0


def list_rooms(
    cur: PgCursor,
    *,
    room_type: str | None = None,
    status: str | None = None,
) -> list[dict[str, Any]]:
    """List rooms ordered by floor and number, with optional filters."""
    conditions: list[str] = []
    params: list = []
    if room_type:
        conditions.append("type = %s")
        params.append(room_type)
    if status:
        conditions.append("status = %s")
        params.append(status)

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    cur.execute(
        f"SELECT {_SELECT_COLUMNS} FROM rooms {where_clause} ORDER BY floor, number",
        params,
    )
    return [_row_to_dict(row) for row in cur.fetchall()]


def list_available_rooms(
    cur: PgCursor,
    *,
    check_in: datetime,
    check_out: datetime,
    room_type: str | None = None,
) -> list[dict[str, Any]]:
    """Rooms outside maintenance with no active reservation overlapping the stay."""
    params: list = [check_out, check_in]
    type_filter = ""
    if room_type:
        type_filter = "AND r.type = %s"
        params.append(room_type)

    cur.execute(
        f"""
        SELECT {", ".join(f"r.{c}" for c in ROOM_COLUMNS)}
        FROM rooms r
        WHERE r.status <> 'maintenance'
          AND NOT EXISTS (
              SELECT 1 FROM reservations res
              WHERE res.room_id = r.id
                AND res.{_HOLDING_FILTER}
                AND res.check_in < %s
                AND res.check_out > %s
          )
          {type_filter}
        ORDER BY r.floor, r.number
        """,
        params,
    )
    return [_row_to_dict(row) for row in cur.fetchall()]


def insert_room(cur: PgCursor, fields: dict[str, Any]) -> dict[str, Any]:
    """Insert a room. Raises psycopg2 UniqueViolation on duplicate number."""
    columns = [c for c in fields if c in WRITABLE_COLUMNS]
    cur.execute(
        f"""
        INSERT INTO rooms ({", ".join(columns)})
        VALUES ({", ".join(["%s"] * len(columns))})
        RETURNING {_SELECT_COLUMNS}
        """,
        [fields[c] for c in columns],
    )
    return _row_to_dict(cur.fetchone())


def update_room(cur: PgCursor, room_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Apply a partial update to a room and return it (None if not found)."""
    columns = [c for c in fields if c in WRITABLE_COLUMNS]
    sets = [f"{c} = %s" for c in columns] + ["updated_at = now()"]
    cur.execute(
        f"""
        UPDATE rooms SET {", ".join(sets)}
        WHERE id = %s
        RETURNING {_SELECT_COLUMNS}
        """,
        [*(fields[c] for c in columns), room_id],
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def delete_room(cur: PgCursor, room_id: str) -> bool:
    """Delete a room. Returns True if a row was removed."""
    cur.execute("DELETE FROM rooms WHERE id = %s", (room_id,))
    return cur.rowcount > 0


def count_holding_reservations(cur: PgCursor, room_id: str) -> int:
    """Number of reservations still holding the room (not cancelled or checked out)."""
    cur.execute(
        f"SELECT count(*) FROM reservations WHERE room_id = %s AND {_HOLDING_FILTER}",
        (room_id,),
    )
    return cur.fetchone()[0]
