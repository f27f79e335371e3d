"""Reservation state machine.

Statuses form a closed set and every status change is a lookup in
TRANSITIONS keyed by (current status, action). A missing key means the
change is not allowed.

    check_in      confirmed   -> checked-in    room: occupied
    check_out     checked-in  -> checked-out   room: available
    cancel        (any)       -> cancelled     room: available
    mark_no_show  (any)       -> no-show       room: unchanged, billing created
    confirm       pending     -> confirmed     room: reserved
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from frontdesk.domain.errors import InvalidTransitionError


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    RESERVED = "reserved"


class TransitionAction(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"
    CONFIRM = "confirm"


# Statuses that never block a room for conflict purposes.
RELEASED_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT})

# Statuses a reservation may be created with.
INITIAL_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


@dataclass(frozen=True)
class Transition:
    action: TransitionAction
    source: ReservationStatus
    target: ReservationStatus
    room_status: RoomStatus | None
    creates_billing: bool = False


def _build_table() -> dict[tuple[ReservationStatus, TransitionAction], Transition]:
    table: dict[tuple[ReservationStatus, TransitionAction], Transition] = {}

    def add(action, source, target, room_status, creates_billing=False):
        table[(source, action)] = Transition(action, source, target, room_status, creates_billing)

    add(TransitionAction.CHECK_IN, ReservationStatus.CONFIRMED,
        ReservationStatus.CHECKED_IN, RoomStatus.OCCUPIED)
    add(TransitionAction.CHECK_OUT, ReservationStatus.CHECKED_IN,
        ReservationStatus.CHECKED_OUT, RoomStatus.AVAILABLE)
    add(TransitionAction.CONFIRM, ReservationStatus.PENDING,
        ReservationStatus.CONFIRMED, RoomStatus.RESERVED)
    for status in ReservationStatus:
        add(TransitionAction.CANCEL, status, ReservationStatus.CANCELLED, RoomStatus.AVAILABLE)
        add(TransitionAction.MARK_NO_SHOW, status, ReservationStatus.NO_SHOW, None,
            creates_billing=True)
    return table


TRANSITIONS = _build_table()

_REJECT_MESSAGES = {
    TransitionAction.CHECK_IN: "Can only check-in confirmed reservations",
    TransitionAction.CHECK_OUT: "Can only check-out checked-in reservations",
    TransitionAction.CONFIRM: "Can only confirm pending reservations",
}

# Status targets accepted by the generic update path, and the action each implies.
UPDATE_STATUS_ACTIONS = {
    ReservationStatus.NO_SHOW: TransitionAction.MARK_NO_SHOW,
    ReservationStatus.CONFIRMED: TransitionAction.CONFIRM,
}


def resolve_transition(current: ReservationStatus | str, action: TransitionAction) -> Transition:
    """Look up the transition for action from the current status.

    Raises:
        InvalidTransitionError: If the table has no entry.
    """
    current = ReservationStatus(current)
    transition = TRANSITIONS.get((current, action))
    if transition is None:
        message = _REJECT_MESSAGES.get(
            action,
            f"Cannot {action.value.replace('_', ' ')} a reservation with status '{current.value}'",
        )
        raise InvalidTransitionError(message)
    return transition


def transition_for_update(
    current: ReservationStatus | str,
    requested: ReservationStatus | str,
) -> Transition | None:
    """Resolve a status change requested through the generic update path.

    Returns None when the status does not change (except no-show, which is
    re-applied so the billing existence check runs).

    Raises:
        InvalidTransitionError: For targets that must go through a
            dedicated operation (check-in, check-out, cancel) or are not
            reachable from the current status.
    """
    current = ReservationStatus(current)
    requested = ReservationStatus(requested)

    if requested == current and requested != ReservationStatus.NO_SHOW:
        return None

    action = UPDATE_STATUS_ACTIONS.get(requested)
    if action is None:
        raise InvalidTransitionError(
            f"Status '{requested.value}' cannot be set through a generic update; "
            "use the check-in, check-out or cancel operation"
        )
    return resolve_transition(current, action)


# Room status implied by a reservation that currently holds its room.
HOLDING_ROOM_STATUS = {
    ReservationStatus.CONFIRMED: RoomStatus.RESERVED,
    ReservationStatus.CHECKED_IN: RoomStatus.OCCUPIED,
}
