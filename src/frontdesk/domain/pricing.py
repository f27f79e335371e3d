"""Stay pricing: nights, company discount and card deposit.

Amounts are integer cents. Rounding is half-up to the cent.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

COMPANY_DISCOUNT_PERCENT = 15
CARD_DEPOSIT_PERCENT = 50

_SECONDS_PER_NIGHT = 24 * 3600


@dataclass(frozen=True)
class StayQuote:
    nights: int
    total_cents: int
    deposit_cents: int
    discount_percent: int | None


def count_nights(check_in: datetime, check_out: datetime) -> int:
    """Number of billable nights; a partial day counts as a full night."""
    seconds = (check_out - check_in).total_seconds()
    return max(1, math.ceil(seconds / _SECONDS_PER_NIGHT))


def _percent_of(amount_cents: int, percent: int) -> int:
    return (amount_cents * percent + 50) // 100


def quote_stay(
    *,
    price_cents: int,
    check_in: datetime,
    check_out: datetime,
    payment_method: str,
    is_company_booking: bool = False,
) -> StayQuote:
    """Price a stay for one room.

    Company bookings get COMPANY_DISCOUNT_PERCENT off; credit card bookings
    require a CARD_DEPOSIT_PERCENT deposit, other methods none.
    """
    nights = count_nights(check_in, check_out)
    total_cents = price_cents * nights

    discount_percent = None
    if is_company_booking:
        discount_percent = COMPANY_DISCOUNT_PERCENT
        total_cents -= _percent_of(total_cents, COMPANY_DISCOUNT_PERCENT)

    deposit_cents = 0
    if payment_method == "credit_card":
        deposit_cents = _percent_of(total_cents, CARD_DEPOSIT_PERCENT)

    return StayQuote(
        nights=nights,
        total_cents=total_cents,
        deposit_cents=deposit_cents,
        discount_percent=discount_percent,
    )
