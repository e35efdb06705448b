# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

import os

os.environ.setdefault("ENV", "test")

import pytest
from datetime import datetime, time, timedelta
from fastapi.testclient import TestClient
from typing import Generator
from zoneinfo import ZoneInfo

from core.config import settings
from dependencies.auth import CurrentUser, get_current_user
from dependencies.services import get_notifier, get_request_store
from main import create_app
from models.enums import RequestKind
from tests.fakes import FakeRequestStore, RecordingNotifier


@pytest.fixture
def store() -> FakeRequestStore:
    """Store seeded with one property, two units, two clients, an agent and an admin."""
    fake = FakeRequestStore()
    fake.add_property("P1", name="Residencial Aurora")
    fake.add_unit("U1", property_id="P1", identifier="101", block="A")
    fake.add_unit("U2", property_id="P1", identifier="102", block="A")
    fake.add_user("client-1", full_name="Ana Souza", documents={"identityDoc": ["rg.pdf"]})
    fake.add_user("client-2", full_name="Bruno Lima")
    fake.add_user("agent-1", role="agent", full_name="Carla Corretora")
    fake.add_user("admin-1", role="admin", full_name="Admin")
    return fake


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


@pytest.fixture
def tomorrow_slot(tz) -> str:
    """A slot inside the visit window (tomorrow 10:00 local)."""
    tomorrow = datetime.now(tz).date() + timedelta(days=1)
    return datetime.combine(tomorrow, time(10, 0), tzinfo=tz).isoformat()


@pytest.fixture
def client_user() -> CurrentUser:
    return CurrentUser(id="client-1", email="client-1@example.com", role="client")


@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(id="admin-1", email="admin-1@example.com", role="admin")


@pytest.fixture(scope="function")
def app(store, notifier):
    """FastAPI app with the store and notifier swapped for in-memory fakes."""
    application = create_app()
    application.dependency_overrides[get_request_store] = lambda: store
    application.dependency_overrides[get_notifier] = lambda: notifier
    return application


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(app):
    """login(user) makes every following request run as `user`; login(None) logs out."""

    def _login(user):
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = lambda: user

    return _login


@pytest.fixture
def pending_reservation(store):
    return store.add_request(
        RequestKind.reservations, id="R1", client_id="client-1", property_id="P1", unit_id="U1"
    )


@pytest.fixture
def pending_visit(store, tomorrow_slot):
    return store.add_request(
        RequestKind.visits,
        id="V1",
        client_id="client-1",
        property_id="P1",
        unit_id="U1",
        requested_slots=[tomorrow_slot],
    )
