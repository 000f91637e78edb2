"""Pytest fixtures."""

import os
import tempfile

# Must be set before safetrail settings are loaded
TEST_DATABASE_PATH = os.path.join(tempfile.gettempdir(), "safetrail_test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DATABASE_PATH}"
os.environ["PIN_HASH_ROUNDS"] = "4"
os.environ["EXPIRY_SWEEP_ENABLED"] = "false"
os.environ["ALERT_SEND_DELAY_SECONDS"] = "0"
os.environ["WEB_BASE_URL"] = "https://track.test"

import pytest
from fastapi.testclient import TestClient

from safetrail.core.deps import get_notifier
from safetrail.core.errors import NotificationError
from safetrail.core.rate_limit import limiter
from safetrail.core.session_policies import CHANNEL_SMS, CHANNEL_WHATSAPP
from safetrail.db.base import Base
from safetrail.db.session import SessionLocal, engine
from safetrail.main import app
from safetrail.models import Alert, AlertSession, GpsPosition, SessionContact  # noqa: F401 - register for create_all


class FakeNotifier:
    """Records deliveries; phones listed in `failing` raise NotificationError."""

    def __init__(self, failing=(), whatsapp=()):
        self.failing = set(failing)
        self.whatsapp = set(whatsapp)
        self.sent: list[tuple[str, str]] = []

    def detect_channel(self, phone):
        return CHANNEL_WHATSAPP if phone in self.whatsapp else CHANNEL_SMS

    def send(self, channel, contact, session):
        if contact.phone in self.failing:
            raise NotificationError(f"Delivery to {contact.phone} refused")
        self.sent.append((channel, contact.phone))
        return f"SM{len(self.sent):04d}"


@pytest.fixture(autouse=True)
def setup_db():
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_notifier():
    return FakeNotifier


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(notifier):
    """Test client running the app lifespan, with a fake notifier."""
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def session_payload():
    return {
        "userFirstName": "Marie",
        "contacts": [
            {"name": "Paul", "phone": "+33612345678"},
            {"name": "Lea", "phone": "+33698765432"},
        ],
        "pinCode": "1234",
    }


@pytest.fixture
def created_session(client, session_payload):
    r = client.post("/session", json=session_payload)
    assert r.status_code == 201
    return r.json()
