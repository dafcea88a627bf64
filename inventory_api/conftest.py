# inventory_api/conftest.py
# Shared fixtures: throwaway SQLite database, users of each role, tokens

import os
import tempfile

# Must be set before any inventory_api module reads its config
_DB_DIR = tempfile.mkdtemp(prefix="inventory-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("ENV", "dev")
os.environ["BCRYPT_ROUNDS"] = "4"

import itertools

import pytest
from fastapi.testclient import TestClient

from inventory_api import asset_store, user_store
from inventory_api.auth_context import create_access_token, hash_password
from inventory_api.db import clear_db, get_db_connection
from inventory_api.main import app

_seq = itertools.count(1)

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def clean_db():
    clear_db()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user():
    """Factory: insert a user and return its row plus a token and auth headers."""

    def _make(role="employee", department="IT", email=None, employee_id=None,
              first_name=None, is_active=True, password=DEFAULT_PASSWORD):
        n = next(_seq)
        data = {
            "first_name": first_name or f"{role.title()}{n}",
            "last_name": "Tester",
            "email": email or f"{role}{n}@company.com",
            "role": role,
            "department": department,
            "employee_id": employee_id or f"EMP{n:04d}",
            "is_active": is_active,
        }
        with get_db_connection() as conn:
            user = user_store.create_user(conn, data, hash_password(password))
        token = create_access_token(user["id"])
        return {**user, "token": token, "headers": {"Authorization": f"Bearer {token}"}}

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", department="IT")


@pytest.fixture
def manager(make_user):
    return make_user("manager", department="IT")


@pytest.fixture
def employee(make_user):
    return make_user("employee", department="IT")


@pytest.fixture
def asset_payload():
    """Factory: minimal valid create body (camelCase, as a client sends it)."""

    def _payload(**overrides):
        body = {
            "name": "ThinkPad X1",
            "type": "electronics",
            "category": "Computers",
            "purchaseDate": "2024-01-15",
            "purchasePrice": 1500,
            "currentValue": 1200,
            "location": "IT Department",
        }
        body.update(overrides)
        return body

    return _payload


@pytest.fixture
def make_asset():
    """Factory: insert an asset directly through the store."""

    def _make(**overrides):
        n = next(_seq)
        data = {
            "name": f"Asset {n}",
            "type": "electronics",
            "category": "Computers",
            "purchase_date": "2024-01-15",
            "purchase_price": 1000,
            "current_value": 800,
            "location": "IT Department",
            "status": "active",
            "condition": "good",
            "tags": [],
        }
        data.update(overrides)
        with get_db_connection() as conn:
            return asset_store.create_asset(conn, data)

    return _make
