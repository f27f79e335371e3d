"""Billing ledger rules.

The reservation engine only ever creates billing records (on no-show);
updates are manual staff edits.
"""

from __future__ import annotations

import logging

from psycopg2.extensions import cursor as PgCursor

from frontdesk.infra.repositories import billing_repository

logger = logging.getLogger(__name__)


def derive_payment_status(paid_cents: int, total_cents: int) -> str:
    """paid when fully covered, partial when something was paid, else pending."""
    if paid_cents >= total_cents:
        return "paid"
    if paid_cents > 0:
        return "partial"
    return "pending"


def total_with_charges(room_charges_cents: int, additional_charges: list[dict]) -> int:
    """Room charges plus every additional charge line."""
    return room_charges_cents + sum(int(c["amount_cents"]) for c in additional_charges)


def ensure_no_show_billing(cur: PgCursor, reservation: dict) -> dict | None:
    """Create the billing record for a no-show reservation if none exists.

    Returns the created record, or None when one already exists for the
    reservation. Runs inside the caller's transaction, which holds the
    reservation row lock, so repeated no-show updates cannot race past the
    existence check.
    """
    existing = billing_repository.find_billing_by_reservation(cur, reservation["id"])
    if existing is not None:
        logger.info(
            "no-show billing already exists",
            extra={
                "extra_fields": {
                    "reservation_id": reservation["id"],
                    "billing_id": existing["id"],
                }
            },
        )
        return None

    total_cents = reservation["total_cents"]
    paid_cents = reservation.get("deposit_cents") or 0
    payment_method = reservation.get("payment_method") or "cash"

    record = billing_repository.insert_billing(
        cur,
        reservation_id=reservation["id"],
        customer_id=reservation["customer_id"],
        room_charges_cents=total_cents,
        additional_charges=[],
        total_cents=total_cents,
        paid_cents=paid_cents,
        payment_method=payment_method,
        payment_status=derive_payment_status(paid_cents, total_cents),
    )

    logger.info(
        "no-show billing created",
        extra={
            "extra_fields": {
                "reservation_id": reservation["id"],
                "billing_id": record["id"],
                "payment_status": record["payment_status"],
            }
        },
    )
    return record


def billing_changes(existing: dict, changes: dict) -> dict:
    """Fields to write for a manual edit of a billing record.

    The total follows the charges. The payment status is re-derived from
    paid and total unless the edit sets it explicitly (e.g. refunded).
    """
    fields = dict(changes)
    room_charges = fields.get("room_charges_cents", existing["room_charges_cents"])
    additional = fields.get("additional_charges", existing["additional_charges"])
    paid = fields.get("paid_cents", existing["paid_cents"])

    if "room_charges_cents" in fields or "additional_charges" in fields:
        fields["total_cents"] = total_with_charges(room_charges, additional)
    total = fields.get("total_cents", existing["total_cents"])

    if "payment_status" not in fields and ({"paid_cents", "total_cents"} & fields.keys()):
        fields["payment_status"] = derive_payment_status(paid, total)
    return fields
