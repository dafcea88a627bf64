"""
inventory_api/auth_context.py

Shared authentication primitives for FastAPI dependency injection.

Contains:
- hash_password / verify_password: bcrypt credential hashing
- create_access_token / verify_token: HS256 JWT issue and verification
- AuthContext: immutable caller identity (role + department from the DB)
- require_auth_context: FastAPI dependency for auth enforcement

This module MUST NOT import inventory_api.main to avoid circular dependencies.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Set

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict

from inventory_api.config import ACCESS_TOKEN_DAYS, BCRYPT_ROUNDS, IS_DEV, JWT_ALGORITHM, JWT_SECRET
from inventory_api.db import get_db_connection, is_valid_id
from inventory_api.errors import AuthenticationError
from inventory_api.rbac import role_capabilities
from inventory_api import user_store

# auto_error=False so a missing header is reported as 401 by us, not 403 by FastAPI
security = HTTPBearer(auto_error=False)


# ---------------------------------------------------------
# Passwords
# ---------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ---------------------------------------------------------
# JWT
# ---------------------------------------------------------
def create_access_token(user_id: str, expires_in: Optional[timedelta] = None) -> str:
    """Issue a bearer token scoped to a user id."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + (expires_in or timedelta(days=ACCESS_TOKEN_DAYS)),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify a JWT access token and return the decoded payload.

    Raises:
        AuthenticationError: If the token is expired or invalid
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")


# ---------------------------------------------------------
# AuthContext
# ---------------------------------------------------------
class AuthContext(BaseModel):
    """
    Immutable caller identity derived from the token plus the user row.
    Role and department always come from the database, never from the
    token or the request body.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    role: str
    department: str
    first_name: str = ""
    last_name: str = ""
    capabilities: Set[str] = set()


def context_for_user(user: dict) -> AuthContext:
    return AuthContext(
        user_id=user["id"],
        email=user["email"],
        role=user["role"],
        department=user["department"] or "",
        first_name=user.get("first_name") or "",
        last_name=user.get("last_name") or "",
        capabilities=role_capabilities(user["role"]),
    )


def require_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """
    Auth dependency for every protected route.

    Process:
    1. Require a Bearer token
    2. Verify signature and expiration
    3. Load the user (source of truth for role/department)
    4. Reject unknown or deactivated users

    Raises:
        AuthenticationError(401): Missing/invalid token, unknown or inactive user
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access denied. No token provided.")

    payload = verify_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id or not is_valid_id(user_id):
        print("[AUTH] Missing or malformed user id in token payload")
        raise AuthenticationError("Invalid token")

    with get_db_connection() as conn:
        user = user_store.get_user(conn, user_id)

    if not user:
        print(f"[AUTH] User not found: user_id={user_id}")
        raise AuthenticationError("Invalid token")

    if not user["is_active"]:
        print(f"[AUTH] Inactive user attempted access: user_id={user_id}")
        raise AuthenticationError("Account is deactivated")

    ctx = context_for_user(user)

    if IS_DEV:
        print(f"[AUTH] Authenticated: user_id={ctx.user_id}, role={ctx.role}, department={ctx.department!r}")

    return ctx
