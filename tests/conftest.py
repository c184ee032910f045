import os

# Configure the app before anything imports cmms.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PM_SWEEP_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from cmms.database import Base, SessionLocal, engine
from main import app

DEFAULT_PASSWORD = "Passw0rd123"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def register(client):
    """Register a company with its admin and return ids, tokens and auth headers"""
    def _register(email="admin@acme.com", company_name="Acme Facilities", name="Alice Admin"):
        response = client.post("/api/auth/register", json={
            "name": name,
            "email": email,
            "password": DEFAULT_PASSWORD,
            "company_name": company_name,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "company_id": body["user"]["company_id"],
            "user_id": body["user"]["id"],
            "email": email,
            "access_token": body["access_token"],
            "refresh_token": body["refresh_token"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
            "base": f"/api/companies/{body['user']['company_id']}",
        }
    return _register


@pytest.fixture
def tenant(register):
    return register()


@pytest.fixture
def other_tenant(register):
    return register(email="admin@globex.com", company_name="Globex Plant", name="Bob Boss")


@pytest.fixture
def pm_payload():
    def _payload(**overrides):
        payload = {
            "title": "Monthly compressor inspection",
            "description": "Check belts, filters and oil level",
            "schedule_type": "regularInterval",
            "frequency": 1,
            "time_unit": "month",
            "start_date": "2024-01-01",
            "next_due_date": "2024-02-01",
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest.fixture
def create_pm(client, pm_payload):
    """POST a PM for the tenant and return the created record"""
    def _create(tenant, **overrides):
        response = client.post(
            f"{tenant['base']}/preventive-maintenance",
            json=pm_payload(**overrides),
            headers=tenant["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create


@pytest.fixture
def create_asset(client):
    def _create(tenant, name="Air compressor #1", **fields):
        response = client.post(
            f"{tenant['base']}/assets",
            json={"name": name, **fields},
            headers=tenant["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create
