"""Room conflict detection.

Checks whether a room has an active reservation overlapping a requested
stay.

Overlap formula:  (existing.check_in < new.check_out) AND (existing.check_out > new.check_in)
Strict inequality allows check-out instant == check-in instant (back-to-back stays are OK).

Every status except cancelled and checked-out blocks the room.
"""

from __future__ import annotations

import logging
from datetime import datetime

from psycopg2.extensions import cursor as PgCursor

from frontdesk.domain.errors import ReservationConflictError
from frontdesk.domain.reservation_status import RELEASED_STATUSES

logger = logging.getLogger(__name__)

RELEASED_STATUS_VALUES = sorted(s.value for s in RELEASED_STATUSES)


def check_room_conflict(
    cur: PgCursor,
    *,
    room_id: str,
    check_in: datetime,
    check_out: datetime,
    exclude_reservation_id: str | None = None,
) -> dict | None:
    """Find the first active reservation on room_id overlapping the period.

    Args:
        cur: Database cursor (should be within a transaction).
        room_id: Room identifier.
        check_in: Requested check-in (inclusive).
        check_out: Requested check-out (exclusive).
        exclude_reservation_id: Reservation to ignore (for edits of itself).

    Returns:
        Dict with id, check_in and check_out of the conflicting reservation,
        or None if the room is free.
    """
    conditions = [
        "room_id = %s",
        "status <> ALL(%s)",
        "check_in < %s",   # existing check_in < new check_out
        "check_out > %s",  # existing check_out > new check_in
    ]
    params: list = [room_id, RELEASED_STATUS_VALUES, check_out, check_in]

    if exclude_reservation_id is not None:
        conditions.append("id <> %s")
        params.append(exclude_reservation_id)

    where = " AND ".join(conditions)

    cur.execute(
        f"""
        SELECT id, check_in, check_out
        FROM reservations
        WHERE {where}
        ORDER BY check_in
        LIMIT 1
        """,
        params,
    )
    row = cur.fetchone()
    if row is None:
        return None

    conflict = {"id": str(row[0]), "check_in": row[1], "check_out": row[2]}
    logger.warning(
        "room conflict detected",
        extra={
            "extra_fields": {
                "room_id": room_id,
                "requested_check_in": check_in.isoformat(),
                "requested_check_out": check_out.isoformat(),
                "conflicting_reservation_id": conflict["id"],
            },
        },
    )
    return conflict


def assert_no_room_conflict(
    cur: PgCursor,
    *,
    room_id: str,
    check_in: datetime,
    check_out: datetime,
    exclude_reservation_id: str | None = None,
) -> None:
    """Raise ReservationConflictError if the room has an overlapping reservation.

    All arguments are forwarded to check_room_conflict.
    """
    conflict = check_room_conflict(
        cur,
        room_id=room_id,
        check_in=check_in,
        check_out=check_out,
        exclude_reservation_id=exclude_reservation_id,
    )
    if conflict is not None:
        raise ReservationConflictError(room_id=room_id, conflicting_reservation_id=conflict["id"])
