"""Access policy for reservations.

One function decides what a caller may do with a reservation; every
engine operation asks it instead of branching on roles itself.

    staff (admin, manager, clerk)  everything
    owner                          view, update, cancel, delete once cancelled
    anyone else                    nothing

The owner is the customer the reservation belongs to, or the travel
company that made a company booking.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from frontdesk.domain.errors import ForbiddenError


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    CLERK = "clerk"
    CUSTOMER = "customer"
    TRAVEL_COMPANY = "travel_company"


STAFF_ROLES = frozenset({Role.ADMIN, Role.MANAGER, Role.CLERK})


class ReservationAction(str, Enum):
    VIEW = "view"
    UPDATE = "update"
    CANCEL = "cancel"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    DELETE = "delete"
    DELETE_IF_CANCELLED = "delete_if_cancelled"


_STAFF_ACTIONS = frozenset(
    {
        ReservationAction.VIEW,
        ReservationAction.UPDATE,
        ReservationAction.CANCEL,
        ReservationAction.CHECK_IN,
        ReservationAction.CHECK_OUT,
        ReservationAction.DELETE,
    }
)

_OWNER_ACTIONS = frozenset(
    {
        ReservationAction.VIEW,
        ReservationAction.UPDATE,
        ReservationAction.CANCEL,
        ReservationAction.DELETE_IF_CANCELLED,
    }
)

_ACTION_VERBS = {
    ReservationAction.VIEW: "view",
    ReservationAction.UPDATE: "update",
    ReservationAction.CANCEL: "cancel",
    ReservationAction.CHECK_IN: "check in",
    ReservationAction.CHECK_OUT: "check out",
    ReservationAction.DELETE: "delete",
    ReservationAction.DELETE_IF_CANCELLED: "delete",
}


class Caller(Protocol):
    id: str
    role: str


@dataclass(frozen=True)
class ListScope:
    """Filter applied when listing reservations; None fields mean unrestricted."""

    customer_id: str | None = None
    company_id: str | None = None


def role_of(caller: Caller) -> Role | None:
    try:
        return Role(caller.role)
    except ValueError:
        return None


def is_staff(caller: Caller) -> bool:
    return role_of(caller) in STAFF_ROLES


def is_owner(caller: Caller, reservation: dict) -> bool:
    role = role_of(caller)
    if role == Role.CUSTOMER:
        return reservation.get("customer_id") == caller.id
    if role == Role.TRAVEL_COMPANY:
        return bool(reservation.get("is_company_booking")) and reservation.get("company_id") == caller.id
    return False


def allowed_actions(caller: Caller, reservation: dict) -> frozenset[ReservationAction]:
    """Actions caller may perform on reservation."""
    if is_staff(caller):
        return _STAFF_ACTIONS
    if is_owner(caller, reservation):
        return _OWNER_ACTIONS
    return frozenset()


def authorize(caller: Caller, reservation: dict, action: ReservationAction) -> None:
    """Raise ForbiddenError unless action is allowed for caller."""
    if action not in allowed_actions(caller, reservation):
        raise ForbiddenError(f"Not authorized to {_ACTION_VERBS[action]} this reservation")


def reservation_list_scope(caller: Caller) -> ListScope:
    """Which reservations a caller sees when listing.

    Unknown roles see only reservations they own as a customer.
    """
    role = role_of(caller)
    if role in STAFF_ROLES:
        return ListScope()
    if role == Role.TRAVEL_COMPANY:
        return ListScope(company_id=caller.id)
    return ListScope(customer_id=caller.id)
