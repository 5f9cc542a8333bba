"""
Pytest configuration and shared fixtures for the Mixer Rental API tests.
"""

import os
import tempfile

import pytest

# Set test environment variables before importing the app
os.environ.setdefault("DATABASE_URL", os.path.join(tempfile.mkdtemp(prefix="mixer_rental_"), "test.db"))
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("ADMIN_PASSWORD", "admin-password")
os.environ.setdefault("ADMIN_EMAILS", "ops@example.com")

from fastapi.testclient import TestClient  # noqa: E402

from mixer_rental_api.app.api.endpoints.customer_portal import query_limiter  # noqa: E402
from mixer_rental_api.app.core.config import settings  # noqa: E402
from mixer_rental_api.app.core.db import init_db  # noqa: E402
from mixer_rental_api.app.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db(tmp_path):
    """Point every test at its own freshly migrated database."""
    original = settings.database_url
    settings.database_url = str(tmp_path / "test.db")
    init_db()
    query_limiter.reset()
    yield
    settings.database_url = original


@pytest.fixture
def client():
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/api/admin/auth/login",
        json={"username": settings.admin_username, "password": settings.admin_password},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


@pytest.fixture
def machine(client, auth_headers):
    response = client.post(
        "/api/admin/machines/",
        json={
            "machine_number": "CM-001",
            "name": "Concrete Mixer 10/7",
            "description": "Diesel, hydraulic hopper",
            "price_by_day": 100,
            "price_by_week": 600,
            "price_by_month": 2000,
            "gst_percentage": 18,
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def catalog(client, auth_headers):
    """Two categories: "Engine" with two sub-services and "Washing" with none."""
    engine = client.post("/api/admin/services/categories", json={"name": "Engine"}, headers=auth_headers)
    washing = client.post("/api/admin/services/categories", json={"name": "Washing"}, headers=auth_headers)
    engine_id = engine.json()["data"]["id"]
    oil = client.post(
        "/api/admin/services/sub-items",
        json={"category_id": engine_id, "name": "Oil change"},
        headers=auth_headers,
    )
    filter_ = client.post(
        "/api/admin/services/sub-items",
        json={"category_id": engine_id, "name": "Air filter"},
        headers=auth_headers,
    )
    return {
        "engine": engine_id,
        "washing": washing.json()["data"]["id"],
        "oil": oil.json()["data"]["id"],
        "filter": filter_.json()["data"]["id"],
    }
