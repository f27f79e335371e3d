"""Shared pytest fixtures for the front desk tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from frontdesk.api.auth import CurrentUser, get_current_user  # noqa: E402
from frontdesk.api.factory import create_app  # noqa: E402
from tests.fakes import FakeStore  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_oidc_jwks_cache():
    """Reset the module-level JWKS cache so keys from one test never leak into another."""
    import frontdesk.api.auth as auth_module

    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0
    yield
    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0


@pytest.fixture(autouse=True)
def _no_scheduler(monkeypatch):
    """Apps built in tests never start the sweep thread."""
    monkeypatch.setenv("NO_SHOW_SWEEP_ENABLED", "false")


@pytest.fixture
def store(monkeypatch):
    return FakeStore().install(monkeypatch)


@pytest.fixture
def as_user():
    """Build a TestClient authenticated as the given CurrentUser."""

    def _client(user: CurrentUser, role: str = "public") -> TestClient:
        app = create_app(role=role)
        app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app, raise_server_exceptions=False)

    return _client
