"""Tests for the reservation transition table."""

from __future__ import annotations

import pytest

from frontdesk.domain.errors import InvalidTransitionError
from frontdesk.domain.reservation_status import (
    TRANSITIONS,
    ReservationStatus,
    RoomStatus,
    TransitionAction,
    resolve_transition,
    transition_for_update,
)

ALL_STATUSES = list(ReservationStatus)


class TestResolveTransition:
    def test_check_in_from_confirmed(self):
        t = resolve_transition("confirmed", TransitionAction.CHECK_IN)
        assert t.target == ReservationStatus.CHECKED_IN
        assert t.room_status == RoomStatus.OCCUPIED

    @pytest.mark.parametrize("status", [s for s in ALL_STATUSES if s != ReservationStatus.CONFIRMED])
    def test_check_in_rejected_elsewhere(self, status):
        with pytest.raises(InvalidTransitionError, match="Can only check-in confirmed reservations"):
            resolve_transition(status, TransitionAction.CHECK_IN)

    def test_check_out_from_checked_in(self):
        t = resolve_transition("checked-in", TransitionAction.CHECK_OUT)
        assert t.target == ReservationStatus.CHECKED_OUT
        assert t.room_status == RoomStatus.AVAILABLE

    @pytest.mark.parametrize("status", [s for s in ALL_STATUSES if s != ReservationStatus.CHECKED_IN])
    def test_check_out_rejected_elsewhere(self, status):
        with pytest.raises(InvalidTransitionError, match="Can only check-out checked-in reservations"):
            resolve_transition(status, TransitionAction.CHECK_OUT)

    @pytest.mark.parametrize("status", ALL_STATUSES)
    def test_cancel_from_any_status_releases_room(self, status):
        t = resolve_transition(status, TransitionAction.CANCEL)
        assert t.target == ReservationStatus.CANCELLED
        assert t.room_status == RoomStatus.AVAILABLE

    @pytest.mark.parametrize("status", ALL_STATUSES)
    def test_no_show_from_any_status_creates_billing_only(self, status):
        t = resolve_transition(status, TransitionAction.MARK_NO_SHOW)
        assert t.target == ReservationStatus.NO_SHOW
        assert t.room_status is None
        assert t.creates_billing is True

    def test_confirm_only_from_pending(self):
        assert resolve_transition("pending", TransitionAction.CONFIRM).room_status == RoomStatus.RESERVED
        with pytest.raises(InvalidTransitionError):
            resolve_transition("cancelled", TransitionAction.CONFIRM)

    def test_only_no_show_creates_billing(self):
        billing = {t.action for t in TRANSITIONS.values() if t.creates_billing}
        assert billing == {TransitionAction.MARK_NO_SHOW}


class TestTransitionForUpdate:
    @pytest.mark.parametrize("status", ["pending", "confirmed", "checked-in", "cancelled"])
    def test_unchanged_status_is_noop(self, status):
        assert transition_for_update(status, status) is None

    def test_repeated_no_show_is_reapplied(self):
        t = transition_for_update("no-show", "no-show")
        assert t is not None and t.creates_billing

    def test_pending_to_confirmed(self):
        assert transition_for_update("pending", "confirmed").target == ReservationStatus.CONFIRMED

    @pytest.mark.parametrize("target", ["checked-in", "checked-out", "cancelled"])
    def test_dedicated_operations_required(self, target):
        with pytest.raises(InvalidTransitionError, match="generic update"):
            transition_for_update("confirmed", target)

    def test_confirm_from_checked_in_rejected(self):
        with pytest.raises(InvalidTransitionError):
            transition_for_update("checked-in", "confirmed")

    def test_unknown_status_is_value_error(self):
        with pytest.raises(ValueError):
            transition_for_update("confirmed", "teleported")
