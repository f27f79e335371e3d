"""No-show sweep - converts card-deposit no-shows into cancellations.

Guests who booked with a credit card deposit and were marked no-show keep
their hold until the evening sweep, which cancels the reservation and
releases the room. Cash and pending-payment no-shows are left for staff.

Each candidate is processed in its own transaction through the engine's
cancel transition; one failing candidate never stops the others.
"""

from __future__ import annotations

from datetime import datetime

from frontdesk.domain.reservation_status import ReservationStatus, TransitionAction
from frontdesk.domain.reservations import apply_transition
from frontdesk.infra.repositories import reservations_repository
from frontdesk.infra.time import utc_now
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

SWEEP_PAYMENT_METHOD = "credit_card"


def _cancel_candidate(reservation_id: str, now: datetime) -> bool:
    """Cancel one candidate. Returns False when it no longer qualifies."""
    from frontdesk.infra.db import txn

    with txn() as cur:
        reservation = reservations_repository.get_reservation(cur, reservation_id, lock=True)
        if (
            reservation is None
            or reservation["status"] != ReservationStatus.NO_SHOW.value
            or reservation["payment_method"] != SWEEP_PAYMENT_METHOD
            or reservation["check_in"] > now
        ):
            return False
        apply_transition(cur, reservation, TransitionAction.CANCEL)
    return True


def run_no_show_sweep(now: datetime | None = None) -> dict:
    """Cancel every qualifying no-show and release its room.

    Candidates: status no-show, paid by credit card, check-in at or before
    now. Each candidate is re-read under a row lock before it is cancelled,
    so one changed by staff since selection is skipped.

    Args:
        now: Reference time (defaults to current UTC time).

    Returns:
        {"candidates": int, "processed": int, "skipped": int, "failed": int}

    Raises:
        Exception: Only when the candidate query itself fails.
    """
    from frontdesk.infra.db import txn

    now = now or utc_now()

    with txn() as cur:
        candidate_ids = reservations_repository.list_no_show_candidates(
            cur, now=now, payment_method=SWEEP_PAYMENT_METHOD
        )

    processed = skipped = failed = 0
    for reservation_id in candidate_ids:
        try:
            if _cancel_candidate(reservation_id, now):
                processed += 1
            else:
                skipped += 1
        except Exception:
            failed += 1
            logger.exception(
                "no-show sweep candidate failed",
                extra={"extra_fields": {"reservation_id": reservation_id}},
            )

    result = {
        "candidates": len(candidate_ids),
        "processed": processed,
        "skipped": skipped,
        "failed": failed,
    }
    logger.info(
        "no-show sweep completed",
        extra={"extra_fields": {**result, "swept_at": now.isoformat()}},
    )
    return result
