"""Tests for time utilities."""

from datetime import datetime, timedelta, timezone


class TestUtcNow:
    """Tests for utc_now()."""

    def test_returns_utc_datetime(self):
        from frontdesk.infra.time import utc_now

        assert utc_now().tzinfo == timezone.utc

    def test_returns_current_time(self):
        from frontdesk.infra.time import utc_now

        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after


class TestEnsureAware:
    def test_naive_becomes_utc(self):
        from frontdesk.infra.time import ensure_aware

        assert ensure_aware(datetime(2024, 3, 1, 14)) == datetime(2024, 3, 1, 14, tzinfo=timezone.utc)

    def test_aware_unchanged(self):
        from frontdesk.infra.time import ensure_aware

        value = datetime(2024, 3, 1, 14, tzinfo=timezone(timedelta(hours=-3)))
        assert ensure_aware(value) is value


class TestLocalNow:
    def test_explicit_zone(self):
        from frontdesk.infra.time import local_now

        assert str(local_now("Europe/Lisbon").tzinfo) == "Europe/Lisbon"

    def test_zone_from_env(self, monkeypatch):
        from frontdesk.infra.time import local_now

        monkeypatch.setenv("NO_SHOW_SWEEP_TZ", "America/Sao_Paulo")
        assert str(local_now().tzinfo) == "America/Sao_Paulo"

    def test_server_local_is_aware(self, monkeypatch):
        from frontdesk.infra.time import local_now

        monkeypatch.delenv("NO_SHOW_SWEEP_TZ", raising=False)
        assert local_now().tzinfo is not None
