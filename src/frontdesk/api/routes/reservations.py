"""Reservations endpoints.

GET    /reservations                  → role-scoped list, newest first
GET    /reservations/{id}             → one reservation (owner or staff)
POST   /reservations                  → create (201)
PUT    /reservations/{id}             → partial update (owner or staff)
PUT    /reservations/{id}/cancel      → cancelled (owner or staff)
PUT    /reservations/{id}/checkin     → checked-in (admin, manager, clerk)
PUT    /reservations/{id}/checkout    → checked-out (admin, manager, clerk)
DELETE /reservations/{id}             → staff, or owner once cancelled

Business rules live in frontdesk.domain.reservations; handlers only parse,
call the engine and wrap the result.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from frontdesk.api.auth import CurrentUser, get_current_user
from frontdesk.api.rbac import require_staff
from frontdesk.domain import reservations as engine
from frontdesk.domain.reservation_status import ReservationStatus

router = APIRouter(prefix="/reservations", tags=["reservations"])

PaymentMethod = Literal["pending", "credit_card", "cash"]


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateReservationRequest(BaseModel):
    # Unknown fields (a full card number, for instance) are rejected.
    model_config = ConfigDict(extra="forbid")

    room_id: UUID
    check_in: datetime
    check_out: datetime
    guests: int = Field(1, ge=1)
    status: Literal["pending", "confirmed"] | None = None
    payment_method: PaymentMethod = "pending"
    card_last4: str | None = Field(None, pattern=r"^\d{4}$")
    card_exp_month: int | None = Field(None, ge=1, le=12)
    card_exp_year: int | None = Field(None, ge=2000, le=2100)
    special_requests: str | None = Field(None, max_length=2000)
    customer_id: UUID | None = None
    is_company_booking: bool = False
    company_id: UUID | None = None


class UpdateReservationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: UUID | None = None
    check_in: datetime | None = None
    check_out: datetime | None = None
    guests: int | None = Field(None, ge=1)
    status: ReservationStatus | None = None
    payment_method: PaymentMethod | None = None
    card_last4: str | None = Field(None, pattern=r"^\d{4}$")
    card_exp_month: int | None = Field(None, ge=1, le=12)
    card_exp_year: int | None = Field(None, ge=2000, le=2100)
    special_requests: str | None = Field(None, max_length=2000)


# Fields a client may clear by sending null.
_CLEARABLE = frozenset({"special_requests", "card_last4", "card_exp_month", "card_exp_year"})


def _to_engine(body: BaseModel) -> dict:
    """Only the fields the client sent; UUIDs and enums as plain strings."""
    data = body.model_dump(exclude_unset=True)
    for key, value in data.items():
        if isinstance(value, UUID):
            data[key] = str(value)
        elif isinstance(value, ReservationStatus):
            data[key] = value.value
    return data


def _ok(data, message: str | None = None) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


# ── Reads ─────────────────────────────────────────────────────────────────────


@router.get("")
def list_reservations(user: CurrentUser = Depends(get_current_user)) -> dict:
    """Customers see their own, travel companies their company bookings, staff all."""
    rows = engine.list_reservations(user)
    return {"success": True, "count": len(rows), "data": rows}


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: UUID = Path(..., description="Reservation ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    return _ok(engine.get_reservation(user, str(reservation_id)))


# ── Writes ────────────────────────────────────────────────────────────────────


@router.post("", status_code=201)
def create_reservation(
    body: CreateReservationRequest,
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Create a reservation.

    Fails with 404 for an unknown room and 400 when the dates are invalid or
    overlap another active reservation on the room.
    """
    reservation = engine.create_reservation(user, _to_engine(body))
    return _ok(reservation, "Reservation created successfully")


@router.put("/{reservation_id}")
def update_reservation(
    body: UpdateReservationRequest,
    reservation_id: UUID = Path(..., description="Reservation ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Partial update; status may only move to no-show or pending→confirmed."""
    changes = {k: v for k, v in _to_engine(body).items() if v is not None or k in _CLEARABLE}
    reservation = engine.update_reservation(user, str(reservation_id), changes)
    return _ok(reservation, "Reservation updated successfully")


@router.put("/{reservation_id}/cancel")
def cancel_reservation(
    reservation_id: UUID = Path(..., description="Reservation ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    reservation = engine.cancel_reservation(user, str(reservation_id))
    return _ok(reservation, "Reservation cancelled successfully")


@router.put("/{reservation_id}/checkin")
def check_in_reservation(
    reservation_id: UUID = Path(..., description="Reservation ID"),
    user: CurrentUser = Depends(require_staff()),
) -> dict:
    reservation = engine.check_in_reservation(user, str(reservation_id))
    return _ok(reservation, "Checked in successfully")


@router.put("/{reservation_id}/checkout")
def check_out_reservation(
    reservation_id: UUID = Path(..., description="Reservation ID"),
    user: CurrentUser = Depends(require_staff()),
) -> dict:
    reservation = engine.check_out_reservation(user, str(reservation_id))
    return _ok(reservation, "Checked out successfully")


@router.delete("/{reservation_id}")
def delete_reservation(
    reservation_id: UUID = Path(..., description="Reservation ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    engine.delete_reservation(user, str(reservation_id))
    return {"success": True, "message": "Reservation deleted successfully"}
