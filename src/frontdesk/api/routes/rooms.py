"""Room directory endpoints.

GET    /rooms                    → list, filter by type and status (authenticated)
GET    /rooms/available          → free for check_in..check_out (authenticated)
GET    /rooms/{id}               → one room (authenticated)
POST   /rooms                    → create (admin, manager)
POST   /rooms/bulk               → create a numbered range on one floor (admin, manager)
PUT    /rooms/{id}               → partial update (admin, manager)
DELETE /rooms/{id}               → delete unless reservations still hold it (admin, manager)
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from psycopg2 import errors as pg_errors
from pydantic import BaseModel, ConfigDict, Field

from frontdesk.api.auth import CurrentUser, get_current_user
from frontdesk.api.rbac import require_roles
from frontdesk.domain.access_policy import Role
from frontdesk.domain.errors import NotFoundError, ValidationError
from frontdesk.domain.reservation_status import RoomStatus
from frontdesk.infra.repositories import rooms_repository
from frontdesk.infra.time import ensure_aware
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])

RoomType = Literal["standard", "deluxe", "suite", "residential"]

_room_admin = require_roles(Role.ADMIN, Role.MANAGER)


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    number: str = Field(..., min_length=1, max_length=20)
    type: RoomType
    capacity: int = Field(..., ge=1)
    price_cents: int = Field(..., ge=0)
    amenities: list[str] = Field(default_factory=list)
    status: RoomStatus = RoomStatus.AVAILABLE
    floor: int


class BulkCreateRoomsRequest(BaseModel):
    """Rooms start_number, start_number + 1, ... on one floor, all alike."""

    model_config = ConfigDict(extra="forbid")

    floor: int
    start_number: int = Field(..., ge=1)
    count: int = Field(..., ge=1, le=100)
    type: RoomType
    capacity: int = Field(..., ge=1)
    price_cents: int = Field(..., ge=0)
    amenities: list[str] = Field(default_factory=list)


class UpdateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    number: str | None = Field(None, min_length=1, max_length=20)
    type: RoomType | None = None
    capacity: int | None = Field(None, ge=1)
    price_cents: int | None = Field(None, ge=0)
    amenities: list[str] | None = None
    status: RoomStatus | None = None
    floor: int | None = None


def _fields(body: BaseModel) -> dict:
    data = body.model_dump(exclude_unset=True, exclude_none=True)
    if isinstance(data.get("status"), RoomStatus):
        data["status"] = data["status"].value
    return data


# ── Reads ─────────────────────────────────────────────────────────────────────


@router.get("")
def list_rooms(
    type: RoomType | None = Query(None),
    status: RoomStatus | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    from frontdesk.infra.db import txn

    with txn() as cur:
        rooms = rooms_repository.list_rooms(
            cur,
            room_type=type,
            status=status.value if status else None,
        )
    return {"success": True, "count": len(rooms), "data": rooms}


@router.get("/available")
def list_available_rooms(
    check_in: datetime = Query(...),
    check_out: datetime = Query(...),
    type: RoomType | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Rooms not in maintenance with no active reservation overlapping the stay."""
    from frontdesk.infra.db import txn

    check_in, check_out = ensure_aware(check_in), ensure_aware(check_out)
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")

    with txn() as cur:
        rooms = rooms_repository.list_available_rooms(
            cur, check_in=check_in, check_out=check_out, room_type=type
        )
    return {"success": True, "count": len(rooms), "data": rooms}


@router.get("/{room_id}")
def get_room(
    room_id: UUID = Path(..., description="Room ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    from frontdesk.infra.db import txn

    with txn() as cur:
        room = rooms_repository.get_room(cur, str(room_id))
    if room is None:
        raise NotFoundError("Room not found")
    return {"success": True, "data": room}


# ── Writes ────────────────────────────────────────────────────────────────────


@router.post("", status_code=201)
def create_room(body: CreateRoomRequest, user: CurrentUser = Depends(_room_admin)) -> dict:
    """Create a room. 400 if the number is already taken."""
    from frontdesk.infra.db import txn

    try:
        with txn() as cur:
            room = rooms_repository.insert_room(cur, _fields(body))
    except pg_errors.UniqueViolation:
        raise ValidationError(f"Room number {body.number} already exists")

    logger.info(
        "room created",
        extra={"extra_fields": {"room_id": room["id"], "number": room["number"]}},
    )
    return {"success": True, "data": room, "message": "Room created successfully"}


@router.post("/bulk", status_code=201)
def bulk_create_rooms(body: BulkCreateRoomsRequest, user: CurrentUser = Depends(_room_admin)) -> dict:
    """Create count rooms in one transaction; any duplicate number aborts all of them."""
    from frontdesk.infra.db import txn

    numbers = [str(body.start_number + i) for i in range(body.count)]
    template = body.model_dump(exclude={"start_number", "count"})

    try:
        with txn() as cur:
            rooms = [
                rooms_repository.insert_room(
                    cur,
                    {**template, "number": number, "status": RoomStatus.AVAILABLE.value},
                )
                for number in numbers
            ]
    except pg_errors.UniqueViolation:
        raise ValidationError(f"One of room numbers {numbers[0]}-{numbers[-1]} already exists")

    logger.info(
        "rooms bulk created",
        extra={"extra_fields": {"floor": body.floor, "count": len(rooms)}},
    )
    return {
        "success": True,
        "count": len(rooms),
        "data": rooms,
        "message": f"{len(rooms)} rooms created successfully",
    }


@router.put("/{room_id}")
def update_room(
    body: UpdateRoomRequest,
    room_id: UUID = Path(..., description="Room ID"),
    user: CurrentUser = Depends(_room_admin),
) -> dict:
    """Partial update. Setting status here overrides the engine-maintained value."""
    from frontdesk.infra.db import txn

    fields = _fields(body)
    if not fields:
        raise ValidationError("No fields to update")

    try:
        with txn() as cur:
            room = rooms_repository.update_room(cur, str(room_id), fields)
    except pg_errors.UniqueViolation:
        raise ValidationError(f"Room number {body.number} already exists")

    if room is None:
        raise NotFoundError("Room not found")
    return {"success": True, "data": room, "message": "Room updated successfully"}


@router.delete("/{room_id}")
def delete_room(
    room_id: UUID = Path(..., description="Room ID"),
    user: CurrentUser = Depends(_room_admin),
) -> dict:
    """Delete a room. 400 while any reservation (active or historical) references it."""
    from frontdesk.infra.db import txn

    try:
        with txn() as cur:
            if rooms_repository.count_holding_reservations(cur, str(room_id)) > 0:
                raise ValidationError("Cannot delete a room with active reservations")
            deleted = rooms_repository.delete_room(cur, str(room_id))
    except pg_errors.ForeignKeyViolation:
        raise ValidationError("Cannot delete a room referenced by past reservations")

    if not deleted:
        raise NotFoundError("Room not found")

    logger.info("room deleted", extra={"extra_fields": {"room_id": str(room_id)}})
    return {"success": True, "message": "Room deleted successfully"}
