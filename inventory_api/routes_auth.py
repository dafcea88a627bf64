"""
inventory_api/routes_auth.py

Registration, login and self-service profile endpoints.

Security:
- Self-registration always creates an employee; any role in the body is ignored
- Login answers "Invalid credentials" for both unknown email and bad password
- Role and isActive can never be changed through /auth/me
- Tokens and passwords are never logged
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from inventory_api import user_store
from inventory_api.auth_context import (
    AuthContext,
    create_access_token,
    hash_password,
    require_auth_context,
    verify_password,
)
from inventory_api.config import API_PREFIX, IS_DEV
from inventory_api.db import get_db_connection
from inventory_api.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from inventory_api.rbac import Role
from inventory_api.schemas_assets import MessageResponse
from inventory_api.schemas_users import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserResponse,
)

DUPLICATE_USER_MESSAGE = "User with this email or employee ID already exists"

router = APIRouter(
    prefix=f"{API_PREFIX}/auth",
    tags=["auth"],
)


@router.post("/register", status_code=201, response_model=AuthResponse)
def register(request: RegisterRequest) -> AuthResponse:
    """
    Create an employee account and return a token for it.

    Raises:
        ValidationError(400): Invalid input, or email/employee ID already taken
    """
    data = request.model_dump(exclude={"password"})
    data["role"] = Role.EMPLOYEE

    with get_db_connection() as conn:
        if user_store.find_duplicate(conn, data["email"], data["employee_id"]):
            raise ConflictError(DUPLICATE_USER_MESSAGE)
        user = user_store.create_user(conn, data, hash_password(request.password))

    print(f"[AUTH] Registered user_id={user['id']}, department={user['department']!r}")

    return AuthResponse(
        message="User registered successfully",
        token=create_access_token(user["id"]),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest) -> AuthResponse:
    """
    Exchange email + password for a bearer token.

    Raises:
        AuthenticationError(401): Unknown email, wrong password, or deactivated account
    """
    with get_db_connection() as conn:
        record = user_store.get_user_credentials(conn, request.email)
        if record is None:
            if IS_DEV:
                print("[AUTH] Login failed: unknown email")
            raise AuthenticationError("Invalid credentials")

        if not record["is_active"]:
            print(f"[AUTH] Login refused for deactivated user_id={record['id']}")
            raise AuthenticationError("Account is deactivated")

        if not verify_password(request.password, record.pop("password_hash")):
            if IS_DEV:
                print(f"[AUTH] Login failed: bad password for user_id={record['id']}")
            raise AuthenticationError("Invalid credentials")

        user_store.touch_last_login(conn, record["id"])
        user = user_store.get_user(conn, record["id"])

    if IS_DEV:
        print(f"[AUTH] Login ok: user_id={user['id']}, role={user['role']}")

    return AuthResponse(
        message="Login successful",
        token=create_access_token(user["id"]),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
def get_me(ctx: AuthContext = Depends(require_auth_context)) -> UserResponse:
    with get_db_connection() as conn:
        user = user_store.get_user(conn, ctx.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserResponse.model_validate(user)


@router.put("/me", response_model=UserResponse)
def update_me(
    request: ProfileUpdateRequest,
    ctx: AuthContext = Depends(require_auth_context),
) -> UserResponse:
    """
    Update the caller's own profile.

    Raises:
        ValidationError(400): Email or employee ID already used by another user
    """
    changes = request.changes()

    with get_db_connection() as conn:
        if user_store.find_duplicate(conn, changes.get("email"), changes.get("employee_id"), exclude_id=ctx.user_id):
            raise ConflictError(DUPLICATE_USER_MESSAGE)
        user = user_store.update_user(conn, ctx.user_id, changes)

    if user is None:
        raise NotFoundError("User not found")

    if IS_DEV:
        print(f"[AUTH] Profile updated: user_id={ctx.user_id}, fields={sorted(changes)}")

    return UserResponse.model_validate(user)


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    request: ChangePasswordRequest,
    ctx: AuthContext = Depends(require_auth_context),
) -> MessageResponse:
    """
    Raises:
        ValidationError(400): Current password is incorrect, or new one too short
    """
    with get_db_connection() as conn:
        current_hash = user_store.get_password_hash(conn, ctx.user_id)
        if current_hash is None:
            raise NotFoundError("User not found")
        if not verify_password(request.current_password, current_hash):
            raise ValidationError("Current password is incorrect")
        user_store.set_password_hash(conn, ctx.user_id, hash_password(request.new_password))

    print(f"[AUTH] Password changed: user_id={ctx.user_id}")

    return MessageResponse(message="Password updated successfully")
