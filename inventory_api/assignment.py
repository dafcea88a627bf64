"""
inventory_api/assignment.py

Assignment workflow: assign, return and maintenance append.

Each operation:
1. Loads the asset by id (404 if it does not exist)
2. Applies the record policy from rbac (403 on department mismatch)
3. Performs a single-row update. The assignee is last-write-wins; log entries
   are appended inside the UPDATE so concurrent appends all land

Callers pass an open connection so the whole operation runs inside one
transaction.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.engine import Connection

from inventory_api import asset_store, user_store
from inventory_api.auth_context import AuthContext
from inventory_api.config import IS_DEV
from inventory_api.db import is_valid_id, now_iso
from inventory_api.errors import AuthorizationError, InvalidReferenceError, NotFoundError
from inventory_api.models import AssignmentAction
from inventory_api.rbac import can_add_maintenance, can_manage_asset


def load_asset(conn: Connection, asset_id: str) -> dict:
    """Existence check for mutations. Visibility is not applied here."""
    asset = asset_store.get_asset(conn, asset_id) if is_valid_id(asset_id) else None
    if asset is None:
        raise NotFoundError("Asset not found")
    return asset


def _updated_or_missing(asset: Optional[dict]) -> dict:
    # Deleted between the existence check and the write
    if asset is None:
        raise NotFoundError("Asset not found")
    return asset


def ensure_can_manage(ctx: AuthContext, asset: dict) -> None:
    if not can_manage_asset(ctx.role, ctx.department, asset):
        if IS_DEV:
            print(f"[AUTHZ] Department mismatch: user_id={ctx.user_id}, asset_id={asset.get('id')}")
        raise AuthorizationError("Access denied. Asset is outside your department.")


def ensure_user_reference(conn: Connection, user_id: Optional[str]) -> None:
    """Raise InvalidReferenceError unless user_id names an existing user."""
    if user_id is None:
        return
    if not is_valid_id(user_id) or not user_store.user_exists(conn, user_id):
        raise InvalidReferenceError("Invalid user reference", details={"assignedTo": user_id})


def assign(conn: Connection, ctx: AuthContext, asset_id: str, user_id: str) -> dict:
    """
    Assign an asset to a user, replacing any current assignee.

    Raises:
        NotFoundError: asset does not exist
        AuthorizationError: manager outside the asset's department
        InvalidReferenceError: user_id is malformed or unknown
    """
    asset = load_asset(conn, asset_id)
    ensure_can_manage(ctx, asset)
    ensure_user_reference(conn, user_id)

    event = _event(AssignmentAction.assigned, user_id, ctx)
    updated = _updated_or_missing(asset_store.set_assignment(conn, asset_id, user_id, event))

    if IS_DEV:
        print(f"[ASSETS] Assigned: asset_id={asset_id}, user_id={user_id}, by={ctx.user_id}")
    return updated


def return_asset(conn: Connection, ctx: AuthContext, asset_id: str) -> dict:
    """Clear the assignee. Returning an unassigned asset is a silent no-op."""
    asset = load_asset(conn, asset_id)
    ensure_can_manage(ctx, asset)

    previous = asset.get("assigned_to")
    if previous is None:
        return asset

    event = _event(AssignmentAction.returned, previous, ctx)
    updated = _updated_or_missing(asset_store.set_assignment(conn, asset_id, None, event))

    if IS_DEV:
        print(f"[ASSETS] Returned: asset_id={asset_id}, from={previous}, by={ctx.user_id}")
    return updated


def add_maintenance(conn: Connection, ctx: AuthContext, asset_id: str, record: Dict[str, Any]) -> dict:
    """Append a maintenance record. Earlier records are left untouched."""
    asset = load_asset(conn, asset_id)
    if not can_add_maintenance(ctx.role, ctx.department, ctx.user_id, asset):
        if IS_DEV:
            print(f"[AUTHZ] Maintenance denied: user_id={ctx.user_id}, asset_id={asset_id}")
        raise AuthorizationError("Access denied. You cannot add maintenance to this asset.")

    entry = dict(record)
    if hasattr(entry.get("date"), "isoformat"):
        entry["date"] = entry["date"].isoformat()
    updated = _updated_or_missing(asset_store.append_maintenance(conn, asset_id, entry))

    if IS_DEV:
        print(f"[ASSETS] Maintenance added: asset_id={asset_id}, records={len(updated['maintenance_history'])}")
    return updated


def _event(action: AssignmentAction, user_id: Optional[str], ctx: AuthContext) -> dict:
    return {
        "action": action.value,
        "user_id": user_id,
        "performed_by": ctx.user_id,
        "at": now_iso(),
    }
