import os
import tempfile

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'agency_crm_test.db')}"
)
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import date, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from agency_crm.core.clock import FixedClock  # noqa: E402
from agency_crm.core.database import Base, SessionLocal, engine  # noqa: E402
from agency_crm.main import app  # noqa: E402
from agency_crm.schemas import ProjectCreate  # noqa: E402
from agency_crm.services.project_service import ProjectService  # noqa: E402

NOW = datetime(2026, 3, 10, 12, 0, 0)
FUTURE_DUE = "2099-12-31"

CLIENT = {
    "name": "Acme Corp",
    "email": "billing@acme.example.com",
    "phone": "+1 555 0100",
    "address": "1 Market Street",
}


def _reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_db():
    _reset_db()
    yield


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


def register(client: TestClient, email: str, name: str = "Test User", password: str = "secret123") -> dict:
    response = client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def auth_headers(client: TestClient) -> dict:
    """Headers for the first registered user, who is the admin"""
    return register(client, "admin@agency.example.com", name="Admin")


def project_payload(**overrides) -> dict:
    payload = {
        "name": "Website Redesign",
        "client": {"name": "Acme Corp", "email": "pm@acme.example.com", "phone": "+1 555 0101"},
        "start_date": "2026-01-01",
        "total_budget": "1000.00",
    }
    payload.update(overrides)
    return payload


def invoice_payload(**overrides) -> dict:
    payload = {
        "client": dict(CLIENT),
        "items": [{"description": "Design work", "quantity": 1, "unit_price": "1000.00"}],
        "due_date": FUTURE_DUE,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def project(db):
    return ProjectService(db).create(ProjectCreate(
        name="Mobile App",
        client={"name": "Globex", "email": "pm@globex.example.com", "phone": "+1 555 0102"},
        start_date=date(2026, 1, 1),
        total_budget=Decimal("5000.00"),
    ))


@pytest.fixture()
def other_project(db):
    return ProjectService(db).create(ProjectCreate(
        name="Brand Refresh",
        client={"name": "Initech", "email": "pm@initech.example.com", "phone": "+1 555 0103"},
        start_date=date(2026, 2, 1),
        total_budget=Decimal("2000.00"),
    ))
