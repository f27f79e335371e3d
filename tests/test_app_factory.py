"""Tests for app factory, role-based routing and the error envelope."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from frontdesk.api.factory import build_no_show_scheduler, create_app, sweep_enabled
from tests.fakes import make_user


class TestPublicRole:
    """Tests for APP_ROLE=public."""

    def test_health_available(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_tasks_not_mounted(self):
        client = TestClient(create_app(role="public"))
        assert client.get("/tasks/health").status_code == 404
        assert client.post("/tasks/reservations/no-show-sweep").status_code == 404

    def test_role_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_ROLE", "worker")
        client = TestClient(create_app())
        assert client.get("/tasks/health").status_code == 200


class TestWorkerRole:
    """Tests for APP_ROLE=worker."""

    def test_health_available(self):
        client = TestClient(create_app(role="worker"))
        assert client.get("/health").status_code == 200

    def test_tasks_mounted(self):
        client = TestClient(create_app(role="worker"))
        response = client.get("/tasks/health")
        assert response.status_code == 200
        assert response.json()["subsystem"] == "tasks"


class TestSweepScheduler:
    @pytest.mark.parametrize(
        "raw, role, expected",
        [
            (None, "worker", True),
            (None, "public", False),
            ("", "worker", True),
            ("true", "public", True),
            ("1", "public", True),
            ("false", "worker", False),
            ("off", "worker", False),
        ],
    )
    def test_sweep_enabled(self, monkeypatch, raw, role, expected):
        if raw is None:
            monkeypatch.delenv("NO_SHOW_SWEEP_ENABLED", raising=False)
        else:
            monkeypatch.setenv("NO_SHOW_SWEEP_ENABLED", raw)
        assert sweep_enabled(role) is expected

    def test_schedule_from_env(self, monkeypatch):
        monkeypatch.setenv("NO_SHOW_SWEEP_HOUR", "20")
        monkeypatch.setenv("NO_SHOW_SWEEP_MINUTE", "30")
        monkeypatch.setenv("NO_SHOW_SWEEP_TZ", "Europe/Lisbon")

        scheduler = build_no_show_scheduler()

        assert (scheduler.hour, scheduler.minute, scheduler.tz_name) == (20, 30, "Europe/Lisbon")

    def test_default_schedule_is_seven_pm(self, monkeypatch):
        monkeypatch.delenv("NO_SHOW_SWEEP_HOUR", raising=False)
        monkeypatch.delenv("NO_SHOW_SWEEP_MINUTE", raising=False)
        scheduler = build_no_show_scheduler()
        assert (scheduler.hour, scheduler.minute) == (19, 0)

    def test_lifespan_starts_and_stops(self, monkeypatch):
        monkeypatch.setenv("NO_SHOW_SWEEP_ENABLED", "true")
        with patch("frontdesk.api.factory.DailyJobScheduler") as scheduler_cls:
            app = create_app(role="worker")
            with TestClient(app):
                scheduler_cls.return_value.start.assert_called_once()
                assert app.state.no_show_scheduler is scheduler_cls.return_value
            scheduler_cls.return_value.stop.assert_called_once()

    def test_disabled_starts_nothing(self):
        app = create_app(role="worker")
        with TestClient(app):
            assert app.state.no_show_scheduler is None


class TestErrorEnvelope:
    def test_unknown_route(self):
        response = TestClient(create_app(role="public")).get("/nowhere")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_missing_auth_is_401_envelope(self):
        response = TestClient(create_app(role="public")).get("/reservations")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_unexpected_error_is_500(self, as_user):
        client = as_user(make_user("clerk"))
        with patch(
            "frontdesk.domain.reservations.list_reservations",
            side_effect=RuntimeError("connection reset"),
        ):
            response = client.get("/reservations")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Server error"}

    def test_validation_is_400(self, as_user, store):
        response = as_user(make_user("customer")).post("/reservations", json={"guests": 0})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert "guests" in {e["field"] for e in body["error"]}


class TestCorrelationId:
    """Tests for correlation ID middleware."""

    def test_generates_correlation_id(self):
        response = TestClient(create_app(role="public")).get("/health")
        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_preserves_incoming_correlation_id(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/health", headers={"X-Correlation-ID": "test-123"})
        assert response.headers["X-Correlation-ID"] == "test-123"
