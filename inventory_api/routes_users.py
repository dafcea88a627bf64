"""
inventory_api/routes_users.py

User directory and administration endpoints.

Security guarantees:
- GET /users, team and assignment lists require "user:view" (admin, manager)
  and are narrowed by rbac.user_visibility_filter: managers only ever see
  their own department
- Update, delete and toggle-status require "user:manage" (admin only)
- Single-user and profile reads 404 outside the caller's visibility
- Password hashes never leave user_store
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.engine import Connection

from inventory_api import asset_store, user_store
from inventory_api.auth_context import AuthContext, require_auth_context
from inventory_api.config import API_PREFIX, IS_DEV
from inventory_api.db import get_db_connection, is_valid_id
from inventory_api.dependencies import pagination, require_capability
from inventory_api.errors import ConflictError, NotFoundError
from inventory_api.filters import Page
from inventory_api.models import UserRole
from inventory_api.rbac import Capability, user_visibility_filter
from inventory_api.schemas_assets import AssetResponse, MessageResponse
from inventory_api.schemas_users import (
    AdminUserUpdateRequest,
    AssignableUsersResponse,
    BasicUserListResponse,
    TeamMembersResponse,
    ToggleStatusResponse,
    UserListResponse,
    UserProfileResponse,
    UserResponse,
)


router = APIRouter(
    prefix=f"{API_PREFIX}/users",
    tags=["users"],
)


def _visible(ctx: AuthContext):
    return user_visibility_filter(ctx.role, ctx.department, ctx.user_id)


def _get_visible_user(conn: Connection, ctx: AuthContext, user_id: str) -> dict:
    user = user_store.get_user(conn, user_id, _visible(ctx)) if is_valid_id(user_id) else None
    if user is None:
        raise NotFoundError("User not found")
    return user


def _get_user_or_404(conn: Connection, user_id: str) -> dict:
    user = user_store.get_user(conn, user_id) if is_valid_id(user_id) else None
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("", response_model=UserListResponse, dependencies=[Depends(require_capability(Capability.USER_VIEW))])
def list_users(
    department: Optional[str] = Query(None, max_length=100),
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None, max_length=200, description="Search name/email/employee ID"),
    page: Page = Depends(pagination),
    ctx: AuthContext = Depends(require_auth_context),
) -> UserListResponse:
    """
    Paginated user list, newest first.

    A manager's department filter is AND-ed with their own department, so
    asking for another department returns nothing.
    """
    with get_db_connection() as conn:
        rows, total = user_store.list_users(
            conn,
            _visible(ctx),
            page,
            department=department,
            role=role.value if role else None,
            search=search,
        )

    if IS_DEV:
        print(f"[USERS] List: user_id={ctx.user_id}, role={ctx.role}, total={total}")

    return UserListResponse(
        users=[UserResponse.model_validate(r) for r in rows],
        pagination=page.summary(total),
    )


@router.get("/basic/list", response_model=BasicUserListResponse, dependencies=[Depends(require_capability(Capability.USER_DIRECTORY))])
def list_basic_users(ctx: AuthContext = Depends(require_auth_context)) -> BasicUserListResponse:
    """Names, departments and roles of all active users (any signed-in user)."""
    with get_db_connection() as conn:
        rows = user_store.list_active_basic(conn)
    return BasicUserListResponse(users=rows)


@router.get("/team/members", response_model=TeamMembersResponse, dependencies=[Depends(require_capability(Capability.USER_VIEW))])
def list_team_members(ctx: AuthContext = Depends(require_auth_context)) -> TeamMembersResponse:
    """Manager: own department. Admin: everyone. Each with assignedAssetCount."""
    with get_db_connection() as conn:
        rows = user_store.list_members(conn, _visible(ctx))
    return TeamMembersResponse(team_members=rows)


@router.get("/assignment/list", response_model=AssignableUsersResponse, dependencies=[Depends(require_capability(Capability.USER_VIEW))])
def list_assignable_users(ctx: AuthContext = Depends(require_auth_context)) -> AssignableUsersResponse:
    """Active users the caller may pick as an assignee."""
    with get_db_connection() as conn:
        rows = user_store.list_members(conn, _visible(ctx), active_only=True)
    return AssignableUsersResponse(users=rows)


@router.get("/profile/{user_id}", response_model=UserProfileResponse, dependencies=[Depends(require_capability(Capability.USER_DIRECTORY))])
def get_user_profile(
    user_id: str = Path(..., description="User ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> UserProfileResponse:
    """A user plus the assets currently assigned to them."""
    with get_db_connection() as conn:
        user = _get_visible_user(conn, ctx, user_id)
        assets = asset_store.list_assigned_to(conn, user_id)
        assignees = {user["id"]: user}

    return UserProfileResponse(
        user=UserResponse.model_validate(user),
        assigned_assets=[AssetResponse.from_row(a, assignees) for a in assets],
    )


@router.get("/{user_id}", response_model=UserResponse, dependencies=[Depends(require_capability(Capability.USER_DIRECTORY))])
def get_user(
    user_id: str = Path(..., description="User ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> UserResponse:
    with get_db_connection() as conn:
        user = _get_visible_user(conn, ctx, user_id)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse, dependencies=[Depends(require_capability(Capability.USER_MANAGE))])
def update_user(
    request: AdminUserUpdateRequest,
    user_id: str = Path(..., description="User ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> UserResponse:
    """
    Admin update of any user field except the password.

    Raises:
        ValidationError(400): Email or employee ID already used by another user
        NotFoundError(404): Unknown user
    """
    changes = request.changes()

    with get_db_connection() as conn:
        _get_user_or_404(conn, user_id)
        if user_store.find_duplicate(conn, changes.get("email"), changes.get("employee_id"), exclude_id=user_id):
            raise ConflictError("User with this email or employee ID already exists")
        user = user_store.update_user(conn, user_id, changes)

    if IS_DEV:
        print(f"[USERS] Updated user_id={user_id}, fields={sorted(changes)}, by={ctx.user_id}")

    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse, dependencies=[Depends(require_capability(Capability.USER_MANAGE))])
def delete_user(
    user_id: str = Path(..., description="User ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> MessageResponse:
    """Hard delete. Every asset assigned to the user is unassigned first."""
    with get_db_connection() as conn:
        _get_user_or_404(conn, user_id)
        user_store.delete_user(conn, user_id)

    if IS_DEV:
        print(f"[USERS] Deleted user_id={user_id}, by={ctx.user_id}")

    return MessageResponse(message="User deleted successfully")


@router.patch("/{user_id}/toggle-status", response_model=ToggleStatusResponse, dependencies=[Depends(require_capability(Capability.USER_MANAGE))])
def toggle_user_status(
    user_id: str = Path(..., description="User ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> ToggleStatusResponse:
    with get_db_connection() as conn:
        user = _get_user_or_404(conn, user_id)
        updated = user_store.update_user(conn, user_id, {"is_active": not user["is_active"]})

    is_active = bool(updated["is_active"])
    state = "activated" if is_active else "deactivated"

    if IS_DEV:
        print(f"[USERS] {state}: user_id={user_id}, by={ctx.user_id}")

    return ToggleStatusResponse(message=f"User {state} successfully", is_active=is_active)
