"""Billing ledger endpoints.

GET  /billings         → staff: all records; others: their own
GET  /billings/{id}    → staff or the billed customer
POST /billings         → manual record for a reservation (staff)
PUT  /billings/{id}    → manual edit: charges, paid amount, method, status (staff)

No-show records are created by the reservation engine, not here.
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from frontdesk.api.auth import CurrentUser, get_current_user
from frontdesk.api.rbac import require_staff
from frontdesk.domain.access_policy import is_staff
from frontdesk.domain.billing import billing_changes, derive_payment_status, total_with_charges
from frontdesk.domain.errors import ForbiddenError, NotFoundError, ValidationError
from frontdesk.infra.repositories import billing_repository, reservations_repository
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/billings", tags=["billings"])

BillingPaymentMethod = Literal["pending", "credit_card", "cash"]
PaymentStatus = Literal["pending", "partial", "paid", "refunded"]


class AdditionalCharge(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., ge=0)


class CreateBillingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reservation_id: UUID
    room_charges_cents: int | None = Field(None, ge=0)
    additional_charges: list[AdditionalCharge] = Field(default_factory=list)
    paid_cents: int = Field(0, ge=0)
    payment_method: BillingPaymentMethod = "cash"


class UpdateBillingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_charges_cents: int | None = Field(None, ge=0)
    additional_charges: list[AdditionalCharge] | None = None
    paid_cents: int | None = Field(None, ge=0)
    payment_method: BillingPaymentMethod | None = None
    payment_status: PaymentStatus | None = None


@router.get("")
def list_billings(user: CurrentUser = Depends(get_current_user)) -> dict:
    from frontdesk.infra.db import txn

    with txn() as cur:
        records = billing_repository.list_billings(
            cur, customer_id=None if is_staff(user) else user.id
        )
    return {"success": True, "count": len(records), "data": records}


@router.get("/{billing_id}")
def get_billing(
    billing_id: UUID = Path(..., description="Billing ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    from frontdesk.infra.db import txn

    with txn() as cur:
        record = billing_repository.get_billing(cur, str(billing_id))
    if record is None:
        raise NotFoundError("Billing record not found")
    if not is_staff(user) and record["customer_id"] != user.id:
        raise ForbiddenError("Not authorized to view this billing record")
    return {"success": True, "data": record}


@router.post("", status_code=201)
def create_billing(body: CreateBillingRequest, user: CurrentUser = Depends(require_staff())) -> dict:
    """Record a bill for a reservation; room charges default to the reservation total."""
    from frontdesk.infra.db import txn

    charges = [c.model_dump() for c in body.additional_charges]

    with txn() as cur:
        reservation = reservations_repository.get_reservation(cur, str(body.reservation_id))
        if reservation is None:
            raise NotFoundError("Reservation not found")

        room_charges = (
            body.room_charges_cents
            if body.room_charges_cents is not None
            else reservation["total_cents"]
        )
        total = total_with_charges(room_charges, charges)
        record = billing_repository.insert_billing(
            cur,
            reservation_id=reservation["id"],
            customer_id=reservation["customer_id"],
            room_charges_cents=room_charges,
            additional_charges=charges,
            total_cents=total,
            paid_cents=body.paid_cents,
            payment_method=body.payment_method,
            payment_status=derive_payment_status(body.paid_cents, total),
        )

    logger.info(
        "billing record created",
        extra={
            "extra_fields": {
                "billing_id": record["id"],
                "reservation_id": record["reservation_id"],
                "payment_status": record["payment_status"],
            }
        },
    )
    return {"success": True, "data": record, "message": "Billing record created successfully"}


@router.put("/{billing_id}")
def update_billing(
    body: UpdateBillingRequest,
    billing_id: UUID = Path(..., description="Billing ID"),
    user: CurrentUser = Depends(require_staff()),
) -> dict:
    from frontdesk.infra.db import txn

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    with txn() as cur:
        existing = billing_repository.get_billing(cur, str(billing_id))
        if existing is None:
            raise NotFoundError("Billing record not found")
        record = billing_repository.update_billing(
            cur, existing["id"], billing_changes(existing, changes)
        )

    return {"success": True, "data": record, "message": "Billing record updated successfully"}
