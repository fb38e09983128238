"""
Shared fixtures: an app on in-memory SQLite with a frozen clock,
a seeded demo user and a logged-in token.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from deliverypref.auth import PasswordHasher
from deliverypref.config import Settings
from deliverypref.main import create_app
from deliverypref.seed import seed_demo_user

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
SEED_EMAIL = "demo@task.io"
SEED_PASSWORD = "Password123!"
PHONE = "5551234567"


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def iso(dt: datetime) -> str:
    return dt.isoformat()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(FIXED_NOW)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite://",
        jwt_secret="test-secret-key-change-me",
        seed_email=SEED_EMAIL,
        seed_password=SEED_PASSWORD,
        docs_enabled=False,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings, clock):
    """App wired to a fresh in-memory database with the demo user already present."""
    app = create_app(settings, clock=clock, passwords=PasswordHasher())
    with app.state.session_factory() as db:
        seed_demo_user(db, settings, app.state.passwords)
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def token(client) -> str:
    r = client.post("/auth/login", json={"email": SEED_EMAIL, "password": SEED_PASSWORD})
    assert r.status_code == 200, r.text
    return r.json()["token"]


@pytest.fixture
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def delivery_payload() -> dict:
    return {
        "deliveryType": "DELIVERY",
        "scheduledTime": iso(FIXED_NOW + timedelta(hours=1)),
        "contactPhone": PHONE,
        "deliveryAddress": "123 Main St",
    }


@pytest.fixture
def delivery_order(client, auth_headers, delivery_payload) -> dict:
    r = client.post("/orders", json=delivery_payload, headers=auth_headers)
    assert r.status_code == 201, r.text
    return r.json()
