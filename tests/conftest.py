from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from pg_finder.core.config import Settings
from pg_finder.core.exceptions import DeliveryFailed
from pg_finder.main import create_app

DEFAULT_CODE = "482193"


class FakeNotifier:
    """Collects outgoing messages; templates listed in fail_templates raise DeliveryFailed."""

    def __init__(self):
        self.sent = []
        self.fail_templates = set()

    def send(self, to, template, context):
        if template in self.fail_templates:
            raise DeliveryFailed(f"Failed to send {template} email")
        self.sent.append({"to": to, "template": template, "context": context})

    def templates(self):
        return [message["template"] for message in self.sent]


class QueuedCodes:
    """OTP generator handing out queued codes first, then DEFAULT_CODE."""

    def __init__(self):
        self.queue = []

    def __call__(self, length=6):
        if self.queue:
            return self.queue.pop(0)
        return DEFAULT_CODE


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite:///{tmp_path / 'pg_finder_test.db'}",
        SECRET_KEY="test-secret-key",
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def otp_codes():
    return QueuedCodes()


@pytest.fixture
def search_client():
    client = MagicMock()
    client.search.return_value = {"hits": {"total": {"value": 0, "relation": "eq"}, "hits": []}}
    return client


@pytest.fixture
def app(settings, notifier, otp_codes, search_client):
    return create_app(settings, search_client=search_client, notifier=notifier, otp_generator=otp_codes)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(client, app):
    session = app.state.db.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def register_user(client, otp_codes):
    """Runs send-otp + verify-otp and returns (user, auth headers)."""

    def _register(email="alice@example.com", password="Secret123", name="Alice", role=None, code=DEFAULT_CODE):
        otp_codes.queue.append(code)
        payload = {"email": email, "name": name, "password": password}
        if role:
            payload["role"] = role

        sent = client.post("/api/auth/send-otp", json=payload)
        assert sent.status_code == 200, sent.text

        verified = client.post(
            "/api/auth/verify-otp",
            json={"email": email, "otp": code, "tempData": sent.json()["data"]["tempData"]},
        )
        assert verified.status_code == 201, verified.text
        data = verified.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def owner(register_user):
    return register_user(email="owner@example.com", name="Olivia Owner", role="owner")


@pytest.fixture
def seeker(register_user):
    return register_user(email="seeker@example.com", name="Sam Seeker")


def listing_payload(**overrides):
    payload = {
        "name": "Sunrise PG",
        "description": "Spacious rooms a short walk from the metro station",
        "location": {
            "address": "12 MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "pincode": "560001",
        },
        "price": {"monthly": 8500, "deposit": 10000},
        "amenities": ["WiFi", "AC"],
        "gender": "Unisex",
        "roomTypes": [{"type": "Double", "available": 2, "price": 8500}],
        "contactInfo": {"phone": "9876543210", "email": "Owner@Example.com"},
        "rules": ["No smoking"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def new_listing():
    return listing_payload
