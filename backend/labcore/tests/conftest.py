import os
os.environ["TESTING"] = "1"
os.environ.setdefault("SECRET_KEY", "test-secret")
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import sys
from pathlib import Path

import uuid
from datetime import timedelta

sys.path.append(str(Path(__file__).resolve().parents[2]))

from labcore.main import app
from labcore.database import Base, get_db, make_engine
from labcore import models, notify

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = make_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def email_outbox():
    notify.EMAIL_OUTBOX.clear()
    yield notify.EMAIL_OUTBOX
    notify.EMAIL_OUTBOX.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def ensure_access_token(client, *, email: str | None = None, password: str = "secret", company_id=None):
    """Register (or log in) a user and return ``(token, email)``."""

    normalized_email = email or f"user-{uuid.uuid4()}@example.com"
    payload = {"email": normalized_email, "password": password}
    if company_id is not None:
        payload["company_id"] = str(company_id)
    resp = client.post("/api/auth/register", json=payload)
    if resp.status_code == 200:
        data = resp.json()
    elif resp.status_code == 400 and resp.json().get("detail") == "Email already registered":
        login_resp = client.post("/api/auth/login", json={"email": normalized_email, "password": password})
        assert login_resp.status_code == 200, login_resp.text
        data = login_resp.json()
    else:
        raise AssertionError(f"Unexpected auth bootstrap failure for {normalized_email}: {resp.status_code} {resp.text}")
    return data["access_token"], normalized_email


def ensure_auth_headers(client, *, email: str | None = None, password: str = "secret", company_id=None):
    token, normalized_email = ensure_access_token(client, email=email, password=password, company_id=company_id)
    return {"Authorization": f"Bearer {token}"}, normalized_email


def set_role(email: str, role: str) -> uuid.UUID:
    """Promote a registered user directly in the database and return its id."""

    session = TestingSessionLocal()
    try:
        user = session.query(models.User).filter_by(email=email).first()
        user.role = role
        session.commit()
        return user.id
    finally:
        session.close()


def make_member(client, role: str = "researcher", company_id=None):
    """Return ``(headers, user_id)`` for a fresh user holding ``role``."""

    headers, email = ensure_auth_headers(client, company_id=company_id)
    user_id = set_role(email, role)
    return headers, user_id


def make_equipment(client, headers, **overrides):
    payload = {
        "name": f"Instrument {uuid.uuid4().hex[:6]}",
        "category": "imaging",
        "rate": 1000.0,
        "rate_unit": "per hour",
        "billing_unit_minutes": 15,
        "billing_rounding": "ceiling",
    }
    payload.update(overrides)
    resp = client.post("/api/equipment/devices", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def future_window(hours_ahead: int = 24, duration_minutes: int = 60, *, offset_minutes: int = 0):
    """Return ISO strings for a naive UTC window starting on a whole hour in the future."""

    base = models.utcnow().replace(minute=0, second=0, microsecond=0) + timedelta(hours=hours_ahead)
    start = base + timedelta(minutes=offset_minutes)
    end = start + timedelta(minutes=duration_minutes)
    return start.isoformat(), end.isoformat()
