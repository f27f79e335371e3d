"""Tests for stay pricing (cents)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from frontdesk.domain.pricing import count_nights, quote_stay

CHECK_IN = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)


class TestCountNights:
    @pytest.mark.parametrize(
        "delta, nights",
        [
            (timedelta(days=1), 1),
            (timedelta(days=2), 2),
            (timedelta(days=1, hours=2), 2),
            (timedelta(hours=3), 1),
        ],
    )
    def test_partial_days_round_up(self, delta, nights):
        assert count_nights(CHECK_IN, CHECK_IN + delta) == nights


class TestQuoteStay:
    def test_card_booking_takes_half_deposit(self):
        quote = quote_stay(
            price_cents=15000,
            check_in=CHECK_IN,
            check_out=CHECK_IN + timedelta(days=2),
            payment_method="credit_card",
        )
        assert (quote.nights, quote.total_cents, quote.deposit_cents) == (2, 30000, 15000)
        assert quote.discount_percent is None

    @pytest.mark.parametrize("method", ["cash", "pending"])
    def test_no_deposit_without_card(self, method):
        quote = quote_stay(
            price_cents=15000,
            check_in=CHECK_IN,
            check_out=CHECK_IN + timedelta(days=2),
            payment_method=method,
        )
        assert quote.total_cents == 30000
        assert quote.deposit_cents == 0

    def test_company_booking_discount(self):
        quote = quote_stay(
            price_cents=10000,
            check_in=CHECK_IN,
            check_out=CHECK_IN + timedelta(days=3),
            payment_method="credit_card",
            is_company_booking=True,
        )
        assert quote.discount_percent == 15
        assert quote.total_cents == 25500
        assert quote.deposit_cents == 12750

    def test_deposit_rounds_half_up(self):
        quote = quote_stay(
            price_cents=10001,
            check_in=CHECK_IN,
            check_out=CHECK_IN + timedelta(days=1),
            payment_method="credit_card",
        )
        assert quote.deposit_cents == 5001
