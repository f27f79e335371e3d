"""HTTP tests for /reservations.

Authentication is overridden with a fixed CurrentUser; storage is the
in-memory FakeStore, so these exercise parsing, the envelope and status
codes on top of the real engine.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from psycopg2 import errors as pg_errors

from tests.fakes import make_user

CHECK_IN = "2024-03-01T00:00:00Z"
CHECK_OUT = "2024-03-03T00:00:00Z"


@pytest.fixture
def room(store):
    return store.add_room(number="101", price_cents=15000, capacity=2)


@pytest.fixture
def customer():
    return make_user("customer")


@pytest.fixture
def clerk():
    return make_user("clerk")


def _create(client, room, **extra):
    body = {"room_id": room["id"], "check_in": CHECK_IN, "check_out": CHECK_OUT, **extra}
    return client.post("/reservations", json=body)


class TestCreate:
    def test_created(self, as_user, store, room, customer):
        response = _create(as_user(customer), room, payment_method="credit_card", card_last4="4242")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Reservation created successfully"
        assert body["data"]["total_cents"] == 30000
        assert body["data"]["deposit_cents"] == 15000
        assert body["data"]["status"] == "confirmed"
        assert body["data"]["card_last4"] == "4242"
        assert store.rooms[room["id"]]["status"] == "reserved"

    def test_overlap_is_400_with_conflicting_id(self, as_user, store, room, customer):
        first = _create(as_user(customer), room).json()["data"]

        response = _create(as_user(make_user("customer")), room, check_in="2024-03-02T00:00:00Z",
                           check_out="2024-03-04T00:00:00Z")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Room is not available for selected dates",
            "error": {"conflicting_reservation_id": first["id"]},
        }

    def test_unknown_room_is_404(self, as_user, store, customer):
        response = _create(as_user(customer), {"id": str(uuid4())})
        assert response.status_code == 404
        assert response.json()["message"] == "Room not found"

    def test_bad_dates_400(self, as_user, store, room, customer):
        response = _create(as_user(customer), room, check_out=CHECK_IN)
        assert response.status_code == 400
        assert response.json()["message"] == "Check-out date must be after check-in date"

    def test_full_card_number_rejected(self, as_user, store, room, customer):
        response = _create(as_user(customer), room, card_number="4242424242424242")
        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"
        assert store.reservations == {}

    def test_card_last4_must_be_digits(self, as_user, store, room, customer):
        response = _create(as_user(customer), room, payment_method="credit_card", card_last4="42a2")
        assert response.status_code == 400
        assert response.json()["error"][0]["field"] == "card_last4"

    def test_initial_status_limited(self, as_user, store, room, customer):
        assert _create(as_user(customer), room, status="checked-in").status_code == 400

    def test_missing_fields(self, as_user, store, customer):
        response = as_user(customer).post("/reservations", json={})
        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["error"]}
        assert {"room_id", "check_in", "check_out"} <= fields

    def test_unknown_customer_is_400(self, as_user, store, room, clerk):
        response = _create(as_user(clerk), room, customer_id=str(uuid4()))
        assert response.status_code == 400
        assert response.json()["message"] == "Customer not found"
        assert store.reservations == {}

    def test_vanished_reference_is_400(self, as_user, store, room, customer, monkeypatch):
        def missing_reference(cur, fields):
            raise pg_errors.ForeignKeyViolation("reservations_customer_id_fkey")

        monkeypatch.setattr(
            "frontdesk.infra.repositories.reservations_repository.insert_reservation",
            missing_reference,
        )

        response = _create(as_user(customer), room)

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestRead:
    def test_list_scoped_to_customer(self, as_user, store, room, customer):
        store.add_reservation(room_id=room["id"], customer_id=customer.id)
        store.add_reservation(room_id=room["id"], customer_id=str(uuid4()))

        body = as_user(customer).get("/reservations").json()

        assert body["success"] is True
        assert body["count"] == 1
        assert body["data"][0]["customer_id"] == customer.id

    def test_staff_list_everything(self, as_user, store, room, clerk):
        store.add_reservation(room_id=room["id"], customer_id="a")
        store.add_reservation(room_id=room["id"], customer_id="b")
        assert as_user(clerk).get("/reservations").json()["count"] == 2

    def test_get_other_customers_reservation_403(self, as_user, store, room, customer):
        other = store.add_reservation(room_id=room["id"], customer_id=str(uuid4()))
        response = as_user(customer).get(f"/reservations/{other['id']}")
        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_get_missing_404(self, as_user, store, customer):
        assert as_user(customer).get(f"/reservations/{uuid4()}").status_code == 404

    def test_malformed_id_400(self, as_user, store, customer):
        assert as_user(customer).get("/reservations/not-a-uuid").status_code == 400


class TestTransitions:
    def test_check_in_and_out(self, as_user, store, room, clerk):
        res = store.add_reservation(room_id=room["id"], customer_id="c", status="confirmed")
        client = as_user(clerk)

        response = client.put(f"/reservations/{res['id']}/checkin")
        assert response.status_code == 200
        assert response.json()["message"] == "Checked in successfully"
        assert store.rooms[room["id"]]["status"] == "occupied"

        response = client.put(f"/reservations/{res['id']}/checkout")
        assert response.json()["data"]["status"] == "checked-out"
        assert store.rooms[room["id"]]["status"] == "available"

    def test_check_in_pending_400(self, as_user, store, room, clerk):
        res = store.add_reservation(room_id=room["id"], customer_id="c", status="pending")
        response = as_user(clerk).put(f"/reservations/{res['id']}/checkin")
        assert response.status_code == 400
        assert response.json()["message"] == "Can only check-in confirmed reservations"

    def test_customer_cannot_check_in(self, as_user, store, room, customer):
        res = store.add_reservation(room_id=room["id"], customer_id=customer.id)
        response = as_user(customer).put(f"/reservations/{res['id']}/checkin")
        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient role"

    def test_owner_cancels(self, as_user, store, room, customer):
        res = store.add_reservation(room_id=room["id"], customer_id=customer.id)
        response = as_user(customer).put(f"/reservations/{res['id']}/cancel")
        assert response.status_code == 200
        assert response.json()["message"] == "Reservation cancelled successfully"
        assert store.reservations[res["id"]]["status"] == "cancelled"


class TestUpdate:
    def test_mark_no_show_creates_billing(self, as_user, store, room, clerk):
        res = store.add_reservation(room_id=room["id"], customer_id="c", deposit_cents=15000)
        client = as_user(clerk)

        client.put(f"/reservations/{res['id']}", json={"status": "no-show"})
        response = client.put(f"/reservations/{res['id']}", json={"status": "no-show"})

        assert response.status_code == 200
        assert response.json()["message"] == "Reservation updated successfully"
        assert len(store.billings_for(res["id"])) == 1

    @pytest.mark.parametrize("target", ["checked-in", "checked-out", "cancelled"])
    def test_guarded_status_400(self, as_user, store, room, clerk, target):
        res = store.add_reservation(room_id=room["id"], customer_id="c")
        response = as_user(clerk).put(f"/reservations/{res['id']}", json={"status": target})
        assert response.status_code == 400

    def test_unknown_status_400(self, as_user, store, room, clerk):
        res = store.add_reservation(room_id=room["id"], customer_id="c")
        response = as_user(clerk).put(f"/reservations/{res['id']}", json={"status": "archived"})
        assert response.status_code == 400

    def test_clear_special_requests(self, as_user, store, room, customer):
        res = store.add_reservation(room_id=room["id"], customer_id=customer.id, special_requests="Cot")
        response = as_user(customer).put(f"/reservations/{res['id']}", json={"special_requests": None})
        assert response.status_code == 200
        assert store.reservations[res["id"]]["special_requests"] is None

    def test_null_dates_ignored(self, as_user, store, room, customer):
        res = store.add_reservation(room_id=room["id"], customer_id=customer.id, guests=1)
        response = as_user(customer).put(
            f"/reservations/{res['id']}", json={"check_in": None, "guests": 2}
        )
        assert response.status_code == 200
        assert response.json()["data"]["guests"] == 2

    def test_guests_over_capacity_is_400(self, as_user, store, room, customer):
        res = store.add_reservation(room_id=room["id"], customer_id=customer.id, guests=1)
        response = as_user(customer).put(f"/reservations/{res['id']}", json={"guests": 9})
        assert response.status_code == 400
        assert response.json()["message"] == "Room 101 accommodates at most 2 guests"

    def test_extension_reprices(self, as_user, store, room, customer):
        created = _create(as_user(customer), room, payment_method="credit_card").json()["data"]
        response = as_user(customer).put(
            f"/reservations/{created['id']}", json={"check_out": "2024-03-08T00:00:00Z"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["total_cents"] == 105000
        assert response.json()["data"]["deposit_cents"] == 52500


class TestDelete:
    def test_owner_needs_cancelled(self, as_user, store, room, customer):
        res = store.add_reservation(room_id=room["id"], customer_id=customer.id, status="checked-in")
        response = as_user(customer).delete(f"/reservations/{res['id']}")
        assert response.status_code == 400
        assert res["id"] in store.reservations

    def test_admin_deletes_any(self, as_user, store, room):
        res = store.add_reservation(room_id=room["id"], customer_id="c", status="checked-in")
        response = as_user(make_user("admin")).delete(f"/reservations/{res['id']}")
        assert response.json() == {"success": True, "message": "Reservation deleted successfully"}
        assert store.rooms[room["id"]]["status"] == "available"
