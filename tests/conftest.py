"""
Pytest fixtures for the settlement API tests.

Runs the app against one in-memory sqlite database that is rebuilt for every
test, with two tenants (ALPHA and BETA) available through auth headers.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CLEANUP_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"

import pytest
from fastapi.testclient import TestClient

import vendorsettle.models  # noqa: F401
from vendorsettle.db.database import Base, engine
from vendorsettle.main import app
from vendorsettle.services.session_registry import settlement_sessions

PASSWORD = "Password123!"


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.create_all(bind=engine)
    settlement_sessions.clear()
    yield
    settlement_sessions.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


def signup(client, email, username, business_code, role="worker", business_type="ice_cream"):
    response = client.post(
        "/auth/signup",
        json={
            "email": email,
            "username": username,
            "password": PASSWORD,
            "business_code": business_code,
            "business_name": f"{business_code} Treats",
            "business_type": business_type,
            "role": role,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def login_headers(client, identity):
    response = client.post("/auth/login", json={"identity": identity, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def owner_headers(client):
    signup(client, "owner@alpha.test", "alpha_owner", "ALPHA", role="business_owner")
    return login_headers(client, "alpha_owner")


@pytest.fixture
def worker_headers(client, owner_headers):
    created = signup(client, "worker@alpha.test", "alpha_worker", "ALPHA")
    response = client.post(f"/auth/users/{created['user_id']}/approve", headers=owner_headers)
    assert response.status_code == 200, response.text
    return login_headers(client, "alpha_worker")


@pytest.fixture
def other_owner_headers(client):
    signup(client, "owner@beta.test", "beta_owner", "BETA", role="business_owner")
    return login_headers(client, "beta_owner")


def create_item(client, headers, name, unit_price, unit_cost, category="Ice Cream", stock=50):
    response = client.post(
        "/inventory/items",
        json={
            "name": name,
            "category": category,
            "unit_price": unit_price,
            "unit_cost": unit_cost,
            "stock": stock,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_vendor(client, headers, name, commission_rate, item_ids=()):
    response = client.post(
        "/vendors",
        json={"name": name, "commission_rate": commission_rate, "item_ids": list(item_ids)},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def catalog(client, owner_headers):
    popsicle = create_item(client, owner_headers, "Mango Popsicle", "3.50", "2.00")
    cone = create_item(client, owner_headers, "Vanilla Cone", "5.00", "3.00", category="Cones")
    return {"popsicle": popsicle, "cone": cone}


@pytest.fixture
def vendor(client, owner_headers, catalog):
    return create_vendor(client, owner_headers, "Amina", "8.5", [catalog["popsicle"]["id"]])


@pytest.fixture
def make_item(client, owner_headers):
    def factory(name, unit_price, unit_cost, category="Ice Cream", stock=50, headers=None):
        return create_item(client, headers or owner_headers, name, unit_price, unit_cost, category, stock)

    return factory


@pytest.fixture
def make_vendor(client, owner_headers):
    def factory(name, commission_rate, item_ids=(), headers=None):
        return create_vendor(client, headers or owner_headers, name, commission_rate, item_ids)

    return factory


@pytest.fixture
def register(client):
    def factory(email, username, business_code, role="worker", business_type="ice_cream"):
        return signup(client, email, username, business_code, role, business_type)

    return factory


@pytest.fixture
def login(client):
    def factory(identity):
        return login_headers(client, identity)

    return factory
