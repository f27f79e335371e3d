"""Reservation lifecycle engine.

Owns reservation status changes and their side effects on the room
directory and the billing ledger. Each operation runs in one transaction:

    lock reservation (or room, on create) -> authorize -> validate
    -> write reservation -> room status -> billing

Status changes are looked up in reservation_status.TRANSITIONS and
permissions in access_policy.allowed_actions.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from frontdesk.domain import billing, room_conflict
from frontdesk.domain.access_policy import (
    Caller,
    ReservationAction,
    Role,
    allowed_actions,
    authorize,
    is_staff,
    reservation_list_scope,
    role_of,
)
from frontdesk.domain.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ReservationConflictError,
    ValidationError,
)
from frontdesk.domain.pricing import quote_stay
from frontdesk.domain.reservation_status import (
    HOLDING_ROOM_STATUS,
    INITIAL_STATUSES,
    RELEASED_STATUSES,
    ReservationStatus,
    RoomStatus,
    Transition,
    TransitionAction,
    resolve_transition,
    transition_for_update,
)
from frontdesk.infra.repositories import reservations_repository, rooms_repository, users_repository
from frontdesk.infra.time import ensure_aware
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

_CARD_FIELDS = ("card_last4", "card_exp_month", "card_exp_year")
_STAY_FIELDS = ("room_id", "check_in", "check_out", "guests", "payment_method")


def _log(message: str, **fields: Any) -> None:
    logger.info(message, extra={"extra_fields": fields})


def _load_for_update(cur: PgCursor, reservation_id: str) -> dict:
    reservation = reservations_repository.get_reservation(cur, reservation_id, lock=True)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    return reservation


def _set_room_status(cur: PgCursor, room_id: str, status: RoomStatus, reservation_id: str) -> None:
    if not rooms_repository.set_room_status(cur, room_id, status.value):
        logger.warning(
            "room missing while applying reservation side effect",
            extra={
                "extra_fields": {
                    "room_id": room_id,
                    "reservation_id": reservation_id,
                    "room_status": status.value,
                }
            },
        )


def _validate_stay(check_in: datetime, check_out: datetime) -> None:
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")


def _check_capacity(room: dict, guests: int) -> None:
    if guests > room["capacity"]:
        raise ValidationError(
            f"Room {room['number']} accommodates at most {room['capacity']} guests"
        )


def _holds_room(status: ReservationStatus | str) -> bool:
    return ReservationStatus(status) not in RELEASED_STATUSES


@contextmanager
def _write_guard(room_id: str) -> Iterator[None]:
    """Map constraint violations on a reservation write to client errors.

    reservations_no_room_overlap only fires when a write bypassed the room
    lock; a foreign key violation means a referenced user or room vanished
    after it was checked.
    """
    try:
        yield
    except pg_errors.ExclusionViolation:
        raise ReservationConflictError(room_id, None)
    except pg_errors.ForeignKeyViolation:
        raise ValidationError("Reservation references a user or room that does not exist")


def apply_transition(cur: PgCursor, reservation: dict, action: TransitionAction) -> dict:
    """Move a locked reservation through action and run the side effects.

    Shared by the request handlers and the no-show sweep.

    Raises:
        InvalidTransitionError: If action is not allowed from the current status.
    """
    transition = resolve_transition(reservation["status"], action)
    updated = reservations_repository.update_reservation(
        cur, reservation["id"], {"status": transition.target.value}
    )
    if updated is None:
        raise NotFoundError("Reservation not found")
    _apply_side_effects(cur, updated, transition)
    _log(
        "reservation transition applied",
        reservation_id=updated["id"],
        room_id=updated["room_id"],
        action=action.value,
        from_status=transition.source.value,
        to_status=transition.target.value,
    )
    return updated


def _move_room_hold(cur: PgCursor, old_room_id: str, reservation: dict) -> None:
    """Release the old room and mark the new one for a reservation that changed rooms."""
    _set_room_status(cur, old_room_id, RoomStatus.AVAILABLE, reservation["id"])
    room_status = HOLDING_ROOM_STATUS.get(ReservationStatus(reservation["status"]))
    if room_status is not None:
        _set_room_status(cur, reservation["room_id"], room_status, reservation["id"])


def _apply_side_effects(cur: PgCursor, reservation: dict, transition: Transition) -> None:
    if transition.room_status is not None:
        _set_room_status(cur, reservation["room_id"], transition.room_status, reservation["id"])
    if transition.creates_billing:
        billing.ensure_no_show_billing(cur, reservation)


# ── Reads ─────────────────────────────────────────────────────────────────────


def list_reservations(caller: Caller) -> list[dict]:
    """List reservations visible to caller, newest first."""
    from frontdesk.infra.db import txn

    scope = reservation_list_scope(caller)
    with txn() as cur:
        return reservations_repository.list_reservations(
            cur,
            customer_id=scope.customer_id,
            company_id=scope.company_id,
        )


def get_reservation(caller: Caller, reservation_id: str) -> dict:
    """Fetch one reservation the caller may view.

    Raises:
        NotFoundError: If it does not exist.
        ForbiddenError: If the caller may not view it.
    """
    from frontdesk.infra.db import txn

    with txn() as cur:
        reservation = reservations_repository.get_reservation(cur, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    authorize(caller, reservation, ReservationAction.VIEW)
    return reservation


# ── Create ────────────────────────────────────────────────────────────────────


def _ownership_fields(caller: Caller, payload: dict) -> dict:
    role = role_of(caller)

    if role == Role.TRAVEL_COMPANY:
        return {
            "customer_id": payload.get("customer_id") or caller.id,
            "is_company_booking": True,
            "company_id": caller.id,
        }

    if is_staff(caller):
        is_company_booking = bool(payload.get("is_company_booking"))
        company_id = payload.get("company_id") if is_company_booking else None
        if is_company_booking and not company_id:
            raise ValidationError("company_id is required for company bookings")
        return {
            "customer_id": payload.get("customer_id") or caller.id,
            "is_company_booking": is_company_booking,
            "company_id": company_id,
        }

    # Customers always book for themselves.
    return {"customer_id": caller.id, "is_company_booking": False, "company_id": None}


def _check_referenced_users(cur: PgCursor, caller: Caller, ownership: dict) -> None:
    """Ids supplied on someone else's behalf must name existing accounts."""
    customer_id = ownership["customer_id"]
    if customer_id != caller.id and users_repository.get_user(cur, customer_id) is None:
        raise ValidationError("Customer not found")

    company_id = ownership["company_id"]
    if company_id is not None and company_id != caller.id:
        company = users_repository.get_user(cur, company_id)
        if company is None or company["role"] != Role.TRAVEL_COMPANY.value:
            raise ValidationError("company_id must reference a travel company")


def create_reservation(caller: Caller, payload: dict) -> dict:
    """Create a reservation after checking the room is free for the stay.

    The room row is locked for the whole transaction, so two concurrent
    bookings for the same room run the conflict check one after the other.

    Args:
        caller: Authenticated caller.
        payload: room_id, check_in, check_out, guests, payment_method and
            optional status (pending|confirmed), card_last4, card_exp_month,
            card_exp_year, special_requests, customer_id,
            is_company_booking, company_id.

    Returns:
        The created reservation.

    Raises:
        NotFoundError: Room does not exist.
        ValidationError: Bad dates, status or guest count.
        ReservationConflictError: Room already booked for overlapping dates.
    """
    from frontdesk.infra.db import txn

    check_in = ensure_aware(payload["check_in"])
    check_out = ensure_aware(payload["check_out"])
    _validate_stay(check_in, check_out)

    status = ReservationStatus(payload.get("status") or ReservationStatus.CONFIRMED)
    if status not in INITIAL_STATUSES:
        raise ValidationError(f"Reservations cannot be created with status '{status.value}'")

    ownership = _ownership_fields(caller, payload)
    payment_method = payload.get("payment_method") or "pending"
    guests = payload.get("guests", 1)

    with txn() as cur:
        room = rooms_repository.get_room(cur, payload["room_id"], lock=True)
        if room is None:
            raise NotFoundError("Room not found")
        _check_capacity(room, guests)
        _check_referenced_users(cur, caller, ownership)

        room_conflict.assert_no_room_conflict(
            cur,
            room_id=room["id"],
            check_in=check_in,
            check_out=check_out,
        )

        quote = quote_stay(
            price_cents=room["price_cents"],
            check_in=check_in,
            check_out=check_out,
            payment_method=payment_method,
            is_company_booking=ownership["is_company_booking"],
        )

        fields = {
            **ownership,
            "room_id": room["id"],
            "check_in": check_in,
            "check_out": check_out,
            "guests": guests,
            "status": status.value,
            "total_cents": quote.total_cents,
            "deposit_cents": quote.deposit_cents,
            "discount_percent": quote.discount_percent,
            "payment_method": payment_method,
            "special_requests": payload.get("special_requests"),
        }
        if payment_method == "credit_card":
            fields.update({k: payload.get(k) for k in _CARD_FIELDS})

        with _write_guard(room["id"]):
            reservation = reservations_repository.insert_reservation(cur, fields)

        if status == ReservationStatus.CONFIRMED:
            _set_room_status(cur, room["id"], RoomStatus.RESERVED, reservation["id"])

    _log(
        "reservation created",
        reservation_id=reservation["id"],
        room_id=reservation["room_id"],
        status=reservation["status"],
        nights=quote.nights,
        total_cents=reservation["total_cents"],
    )
    return reservation


# ── Generic update ────────────────────────────────────────────────────────────


def update_reservation(caller: Caller, reservation_id: str, changes: dict) -> dict:
    """Apply a partial update to a reservation.

    A status change goes through the transition table: no-show from any
    status (creates the billing record once), confirmed from pending.
    Check-in, check-out and cancellation have their own operations. Moving
    an active reservation to other dates or another room re-runs the
    conflict check against everyone else. Guest count is checked against
    the target room's capacity, and any change to room, dates or payment
    method re-prices the stay.

    Raises:
        NotFoundError, ForbiddenError, ValidationError,
        InvalidTransitionError, ReservationConflictError
    """
    from frontdesk.infra.db import txn

    changes = dict(changes)
    requested_status = changes.pop("status", None)

    with txn() as cur:
        reservation = _load_for_update(cur, reservation_id)
        authorize(caller, reservation, ReservationAction.UPDATE)

        transition = None
        if requested_status is not None:
            transition = transition_for_update(reservation["status"], requested_status)

        for key in ("check_in", "check_out"):
            if changes.get(key) is not None:
                changes[key] = ensure_aware(changes[key])

        stay = {key: changes.get(key, reservation[key]) for key in _STAY_FIELDS}
        changed = {key for key in _STAY_FIELDS if stay[key] != reservation[key]}
        if changed:
            room = rooms_repository.get_room(cur, stay["room_id"], lock=True)
            if room is None:
                raise NotFoundError("Room not found")
            _check_capacity(room, stay["guests"])

        if changed & {"room_id", "check_in", "check_out"}:
            _validate_stay(stay["check_in"], stay["check_out"])
            final_status = transition.target if transition else reservation["status"]
            if _holds_room(final_status):
                room_conflict.assert_no_room_conflict(
                    cur,
                    room_id=stay["room_id"],
                    check_in=stay["check_in"],
                    check_out=stay["check_out"],
                    exclude_reservation_id=reservation["id"],
                )

        if changed - {"guests"}:
            quote = quote_stay(
                price_cents=room["price_cents"],
                check_in=stay["check_in"],
                check_out=stay["check_out"],
                payment_method=stay["payment_method"],
                is_company_booking=bool(reservation["is_company_booking"]),
            )
            changes.update(
                total_cents=quote.total_cents,
                deposit_cents=quote.deposit_cents,
                discount_percent=quote.discount_percent,
            )

        if transition is not None:
            changes["status"] = transition.target.value

        updated = reservation
        if changes:
            with _write_guard(stay["room_id"]):
                updated = reservations_repository.update_reservation(cur, reservation["id"], changes)

        if transition is not None:
            _apply_side_effects(cur, updated, transition)

        if updated["room_id"] != reservation["room_id"] and _holds_room(updated["status"]):
            _move_room_hold(cur, reservation["room_id"], updated)

    _log(
        "reservation updated",
        reservation_id=updated["id"],
        fields=sorted(changes),
        status=updated["status"],
    )
    return updated


# ── Dedicated transitions ─────────────────────────────────────────────────────


def _transition(
    caller: Caller,
    reservation_id: str,
    permission: ReservationAction,
    action: TransitionAction,
) -> dict:
    from frontdesk.infra.db import txn

    with txn() as cur:
        reservation = _load_for_update(cur, reservation_id)
        authorize(caller, reservation, permission)
        return apply_transition(cur, reservation, action)


def cancel_reservation(caller: Caller, reservation_id: str) -> dict:
    """Cancel a reservation from any status and release its room.

    Cancelling an already cancelled reservation succeeds and re-releases
    the room.
    """
    return _transition(caller, reservation_id, ReservationAction.CANCEL, TransitionAction.CANCEL)


def check_in_reservation(caller: Caller, reservation_id: str) -> dict:
    """confirmed -> checked-in; room becomes occupied."""
    return _transition(caller, reservation_id, ReservationAction.CHECK_IN, TransitionAction.CHECK_IN)


def check_out_reservation(caller: Caller, reservation_id: str) -> dict:
    """checked-in -> checked-out; room becomes available."""
    return _transition(caller, reservation_id, ReservationAction.CHECK_OUT, TransitionAction.CHECK_OUT)


# ── Delete ────────────────────────────────────────────────────────────────────


def delete_reservation(caller: Caller, reservation_id: str) -> dict:
    """Delete a reservation and release its room whatever its status was.

    Staff may delete any reservation; owners only cancelled ones.

    Returns:
        The deleted reservation.

    Raises:
        NotFoundError: Reservation does not exist.
        ForbiddenError: Caller is neither staff nor owner.
        InvalidTransitionError: Owner deleting a reservation that is not cancelled.
    """
    from frontdesk.infra.db import txn

    with txn() as cur:
        reservation = _load_for_update(cur, reservation_id)

        actions = allowed_actions(caller, reservation)
        if ReservationAction.DELETE not in actions:
            if ReservationAction.DELETE_IF_CANCELLED not in actions:
                raise ForbiddenError("Not authorized to delete this reservation")
            if reservation["status"] != ReservationStatus.CANCELLED.value:
                raise InvalidTransitionError("Only cancelled reservations can be deleted")

        reservations_repository.delete_reservation(cur, reservation["id"])
        _set_room_status(cur, reservation["room_id"], RoomStatus.AVAILABLE, reservation["id"])

    _log(
        "reservation deleted",
        reservation_id=reservation["id"],
        room_id=reservation["room_id"],
        previous_status=reservation["status"],
    )
    return reservation
