"""
Test suite for the /api/auth endpoints.

Tests:
- Registration (defaults, duplicates, role injection)
- Login (credential errors, deactivated accounts, lastLogin)
- Token enforcement on protected routes
- Profile update and password change

Run: pytest inventory_api/test_auth.py -v
"""

from datetime import timedelta

import pytest
from sqlalchemy import text

from inventory_api.auth_context import create_access_token
from inventory_api.db import get_db_connection, new_id


def _register_body(**overrides):
    body = {
        "firstName": "Alice",
        "lastName": "Smith",
        "email": "alice@x.com",
        "password": "secret123",
        "department": "Finance",
        "employeeId": "EMP001",
    }
    body.update(overrides)
    return body


def _user_count():
    with get_db_connection() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM users")).scalar_one()


class TestRegisterAndLogin:
    """Register -> login -> /auth/me round trip."""

    def test_register_login_me(self, client):
        resp = client.post("/api/auth/register", json=_register_body())
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["message"] == "User registered successfully"
        assert data["token"]
        assert data["user"]["role"] == "employee"
        assert "password" not in data["user"]
        assert "passwordHash" not in data["user"]

        resp = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret123"})
        assert resp.status_code == 200, resp.text
        token = resp.json()["token"]

        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200, resp.text
        me = resp.json()
        assert me["role"] == "employee"
        assert me["department"] == "Finance"
        assert me["email"] == "alice@x.com"
        assert me["lastLogin"] is not None

    def test_register_ignores_requested_role(self, client):
        resp = client.post("/api/auth/register", json=_register_body(role="admin"))
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "employee"

    def test_register_normalizes_email(self, client):
        resp = client.post("/api/auth/register", json=_register_body(email="  Alice@X.COM "))
        assert resp.status_code == 201
        assert resp.json()["user"]["email"] == "alice@x.com"

    def test_duplicate_email_rejected_without_new_record(self, client):
        assert client.post("/api/auth/register", json=_register_body()).status_code == 201
        before = _user_count()

        resp = client.post("/api/auth/register", json=_register_body(employeeId="EMP999"))

        assert resp.status_code == 400
        assert resp.json()["error"] == "User with this email or employee ID already exists"
        assert _user_count() == before

    def test_duplicate_employee_id_rejected(self, client):
        assert client.post("/api/auth/register", json=_register_body()).status_code == 201
        resp = client.post("/api/auth/register", json=_register_body(email="bob@x.com"))
        assert resp.status_code == 400

    def test_short_password_rejected(self, client):
        resp = client.post("/api/auth/register", json=_register_body(password="12345"))
        assert resp.status_code == 400
        assert resp.json()["error"] == "Validation failed"
        assert _user_count() == 0

    def test_invalid_email_rejected(self, client):
        resp = client.post("/api/auth/register", json=_register_body(email="not-an-email"))
        assert resp.status_code == 400

    def test_login_unknown_email_and_bad_password_look_the_same(self, client, make_user):
        make_user(email="known@company.com")

        unknown = client.post("/api/auth/login", json={"email": "nobody@company.com", "password": "secret123"})
        wrong = client.post("/api/auth/login", json={"email": "known@company.com", "password": "wrong-pass"})

        assert unknown.status_code == 401
        assert wrong.status_code == 401
        assert unknown.json() == wrong.json() == {"error": "Invalid credentials"}

    def test_login_is_case_insensitive_on_email(self, client, make_user):
        make_user(email="case@company.com")
        resp = client.post("/api/auth/login", json={"email": "CASE@company.com ", "password": "secret123"})
        assert resp.status_code == 200

    def test_login_deactivated_account(self, client, make_user):
        make_user(email="gone@company.com", is_active=False)
        resp = client.post("/api/auth/login", json={"email": "gone@company.com", "password": "secret123"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Account is deactivated"

    def test_login_updates_last_login(self, client, employee):
        assert client.get("/api/auth/me", headers=employee["headers"]).json()["lastLogin"] is None

        resp = client.post("/api/auth/login", json={"email": employee["email"], "password": "secret123"})
        assert resp.status_code == 200
        stamped = resp.json()["user"]["lastLogin"]
        assert stamped is not None

        me = client.get("/api/auth/me", headers=employee["headers"]).json()
        assert me["lastLogin"] == stamped

    def test_failed_login_leaves_last_login_alone(self, client, employee):
        client.post("/api/auth/login", json={"email": employee["email"], "password": "wrong-pass"})
        assert client.get("/api/auth/me", headers=employee["headers"]).json()["lastLogin"] is None


class TestTokenEnforcement:
    """Bearer token checks on protected routes."""

    def test_missing_token(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"] == "Access denied. No token provided."

    def test_garbage_token(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid token"

    def test_expired_token(self, client, employee):
        token = create_access_token(employee["id"], expires_in=timedelta(seconds=-5))
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Token expired"

    def test_token_for_unknown_user(self, client):
        token = create_access_token(new_id())
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_deactivated_user_with_valid_token(self, client, make_user):
        user = make_user(is_active=False)
        resp = client.get("/api/assets", headers=user["headers"])
        assert resp.status_code == 401
        assert resp.json()["error"] == "Account is deactivated"

    def test_role_comes_from_database_not_token(self, client, make_user):
        """Promoting a user in the DB takes effect on their existing token."""
        user = make_user("employee")
        assert client.get("/api/users", headers=user["headers"]).status_code == 403

        with get_db_connection() as conn:
            conn.execute(text("UPDATE users SET role = 'admin' WHERE id = :id"), {"id": user["id"]})

        assert client.get("/api/users", headers=user["headers"]).status_code == 200


class TestProfile:
    """PUT /auth/me and PUT /auth/change-password."""

    def test_update_me_cannot_change_role_or_active(self, client, employee):
        resp = client.put(
            "/api/auth/me",
            headers=employee["headers"],
            json={"firstName": "Renamed", "role": "admin", "isActive": False, "password": "hijack1"},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["firstName"] == "Renamed"
        assert data["role"] == "employee"
        assert data["isActive"] is True

        # Old password still works
        login = client.post("/api/auth/login", json={"email": employee["email"], "password": "secret123"})
        assert login.status_code == 200

    def test_update_me_rejects_taken_email(self, client, employee, make_user):
        other = make_user(email="taken@company.com")
        resp = client.put("/api/auth/me", headers=employee["headers"], json={"email": other["email"]})
        assert resp.status_code == 400

    def test_update_me_keeps_own_email(self, client, employee):
        resp = client.put("/api/auth/me", headers=employee["headers"], json={"email": employee["email"]})
        assert resp.status_code == 200

    def test_change_password(self, client, employee):
        resp = client.put(
            "/api/auth/change-password",
            headers=employee["headers"],
            json={"currentPassword": "secret123", "newPassword": "brandnew1"},
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Password updated successfully"

        old = client.post("/api/auth/login", json={"email": employee["email"], "password": "secret123"})
        new = client.post("/api/auth/login", json={"email": employee["email"], "password": "brandnew1"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_change_password_wrong_current(self, client, employee):
        resp = client.put(
            "/api/auth/change-password",
            headers=employee["headers"],
            json={"currentPassword": "nope-nope", "newPassword": "brandnew1"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Current password is incorrect"

    def test_change_password_too_short(self, client, employee):
        resp = client.put(
            "/api/auth/change-password",
            headers=employee["headers"],
            json={"currentPassword": "secret123", "newPassword": "123"},
        )
        assert resp.status_code == 400


class TestCredentialValidation:
    """Email syntax and the bcrypt password length bound."""

    @pytest.mark.parametrize("email", ["not-an-email", "a@b.c..", "a@@company.com", "alice@", "@company.com"])
    def test_register_rejects_malformed_email(self, client, email):
        resp = client.post("/api/auth/register", json=_register_body(email=email))
        assert resp.status_code == 400
        assert resp.json()["error"] == "Validation failed"
        assert _user_count() == 0

    def test_update_me_rejects_malformed_email(self, client, employee):
        resp = client.put("/api/auth/me", headers=employee["headers"], json={"email": "a@b.c.."})
        assert resp.status_code == 400

    @pytest.mark.parametrize("password", ["p" * 80, "\u00e9" * 40])
    def test_register_rejects_password_over_72_bytes(self, client, password):
        resp = client.post("/api/auth/register", json=_register_body(password=password))
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == "password"
        assert _user_count() == 0

    def test_register_accepts_72_byte_password(self, client):
        password = "p" * 72
        assert client.post("/api/auth/register", json=_register_body(password=password)).status_code == 201
        login = client.post("/api/auth/login", json={"email": "alice@x.com", "password": password})
        assert login.status_code == 200

    def test_change_password_rejects_over_72_bytes(self, client, employee):
        resp = client.put(
            "/api/auth/change-password",
            headers=employee["headers"],
            json={"currentPassword": "secret123", "newPassword": "x" * 73},
        )
        assert resp.status_code == 400
        login = client.post("/api/auth/login", json={"email": employee["email"], "password": "secret123"})
        assert login.status_code == 200

    def test_overlong_login_password_is_just_invalid(self, client, employee):
        resp = client.post("/api/auth/login", json={"email": employee["email"], "password": "x" * 100})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid credentials"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
