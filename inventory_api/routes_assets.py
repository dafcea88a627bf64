"""
inventory_api/routes_assets.py

Assets endpoints with RBAC enforcement.

Security guarantees:
- All endpoints require authentication (require_auth_context)
- Read operations require capability "asset:view" and are narrowed by
  rbac.visibility_filter inside the query (404 outside visibility)
- Create/update/delete/assign/return require capability "asset:manage";
  managers are further limited to assets whose location matches their
  department (403 after the existence check)
- Maintenance requires "maintenance:add" plus the per-asset policy
- Input validation via Pydantic schemas
"""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.engine import Connection

from inventory_api import asset_store
from inventory_api.assignment import (
    add_maintenance,
    assign,
    ensure_can_manage,
    ensure_user_reference,
    load_asset,
    return_asset,
)
from inventory_api.auth_context import AuthContext, require_auth_context
from inventory_api.config import API_PREFIX, IS_DEV
from inventory_api.db import get_db_connection, is_valid_id
from inventory_api.dependencies import pagination, require_capability
from inventory_api.errors import ConflictError, NotFoundError, ValidationError
from inventory_api.filters import Page, and_
from inventory_api.models import AssetStatus, AssetType
from inventory_api.rbac import Capability, visibility_filter
from inventory_api.schemas_assets import (
    AssetCreateRequest,
    AssetHistoryResponse,
    AssetListResponse,
    AssetResponse,
    AssetStatsResponse,
    AssetUpdateRequest,
    AssignRequest,
    MaintenanceCreateRequest,
    MessageResponse,
)


router = APIRouter(
    prefix=f"{API_PREFIX}/assets",
    tags=["assets"],
)


def _visible(ctx: AuthContext):
    return visibility_filter(ctx.role, ctx.department, ctx.user_id)


def _to_response(conn: Connection, row: dict, with_department: bool = False) -> AssetResponse:
    assignees = asset_store.get_assignees(conn, [row.get("assigned_to")])
    return AssetResponse.from_row(row, assignees, with_department=with_department)


def _get_visible_asset(conn: Connection, ctx: AuthContext, asset_id: str) -> dict:
    # 404 whether the asset doesn't exist or sits outside the caller's visibility
    asset = asset_store.get_asset(conn, asset_id, _visible(ctx)) if is_valid_id(asset_id) else None
    if asset is None:
        raise NotFoundError("Asset not found")
    return asset


def _ensure_serial_free(conn: Connection, serial_number: Optional[str], exclude_id: Optional[str] = None) -> None:
    if asset_store.serial_in_use(conn, serial_number, exclude_id):
        raise ConflictError("Serial number already exists", details={"serialNumber": serial_number})


@router.get("", response_model=AssetListResponse, dependencies=[Depends(require_capability(Capability.ASSET_VIEW))])
def list_assets(
    type: Optional[AssetType] = Query(None, description="Filter by asset type"),
    status: Optional[AssetStatus] = Query(None, description="Filter by status"),
    location: Optional[str] = Query(None, max_length=200, description="Location substring (case-insensitive)"),
    assigned_to: Optional[str] = Query(None, alias="assignedTo", description="Assignee user id"),
    search: Optional[str] = Query(None, max_length=200, description="Search name/serial/manufacturer/model"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: Page = Depends(pagination),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetListResponse:
    """
    List the assets visible to the caller.

    Request filters are AND-ed with the role visibility predicate, so an
    employee filtering by someone else's id still only gets their own assets.

    Raises:
        ValidationError(400): Unknown sortBy
        AuthorizationError(403): Missing capability (handled by dependency)
    """
    if sort_by not in asset_store.SORT_COLUMNS:
        raise ValidationError(
            "Invalid sortBy",
            details={"sortBy": sort_by, "allowed": sorted(asset_store.SORT_COLUMNS)},
        )

    request_filter = asset_store.build_list_filter(
        type=type.value if type else None,
        status=status.value if status else None,
        location=location,
        assigned_to=assigned_to,
        search=search,
    )
    predicate = and_(_visible(ctx), request_filter)

    with get_db_connection() as conn:
        rows, total = asset_store.list_assets(conn, predicate, page, sort_by, sort_order)
        assignees = asset_store.get_assignees(conn, (r.get("assigned_to") for r in rows))

    if IS_DEV:
        print(f"[ASSETS] List: user_id={ctx.user_id}, role={ctx.role}, total={total}, page={page.page}")

    return AssetListResponse(
        assets=[AssetResponse.from_row(r, assignees) for r in rows],
        pagination=page.summary(total),
    )


@router.get("/stats/overview", response_model=AssetStatsResponse, dependencies=[Depends(require_capability(Capability.ASSET_VIEW))])
def asset_stats(ctx: AuthContext = Depends(require_auth_context)) -> AssetStatsResponse:
    """Counts and total value over the caller's visible assets."""
    with get_db_connection() as conn:
        data = asset_store.stats(conn, _visible(ctx))
    return AssetStatsResponse.model_validate(data)


@router.get("/{asset_id}", response_model=AssetResponse, dependencies=[Depends(require_capability(Capability.ASSET_VIEW))])
def get_asset(
    asset_id: str = Path(..., description="Asset ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetResponse:
    with get_db_connection() as conn:
        asset = _get_visible_asset(conn, ctx, asset_id)
        return _to_response(conn, asset, with_department=True)


@router.get("/{asset_id}/history", response_model=AssetHistoryResponse, dependencies=[Depends(require_capability(Capability.ASSET_VIEW))])
def get_asset_history(
    asset_id: str = Path(..., description="Asset ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetHistoryResponse:
    """Maintenance and assignment logs of one visible asset, oldest first."""
    with get_db_connection() as conn:
        asset = _get_visible_asset(conn, ctx, asset_id)
        current = _to_response(conn, asset, with_department=True)

    return AssetHistoryResponse(
        asset_id=asset["id"],
        name=asset["name"],
        assigned_to=current.assigned_to,
        maintenance_history=asset["maintenance_history"],
        assignment_history=asset["assignment_history"],
    )


@router.post("", status_code=201, response_model=AssetResponse, dependencies=[Depends(require_capability(Capability.ASSET_MANAGE))])
def create_asset(
    request: AssetCreateRequest,
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetResponse:
    """
    Create a new asset.

    Security:
    - Requires capability "asset:manage"
    - A manager may only create assets located in their department

    Raises:
        ValidationError(400): Invalid input, duplicate serial, unknown assignee
        AuthorizationError(403): Missing capability or department mismatch
    """
    data = request.model_dump()
    data["assigned_to"] = data.get("assigned_to") or None
    ensure_can_manage(ctx, data)

    with get_db_connection() as conn:
        _ensure_serial_free(conn, data.get("serial_number"))
        ensure_user_reference(conn, data.get("assigned_to"))
        asset = asset_store.create_asset(conn, data)

        if IS_DEV:
            print(f"[ASSETS] Created asset_id={asset['id']}, user_id={ctx.user_id}")

        return _to_response(conn, asset)


@router.put("/{asset_id}", response_model=AssetResponse, dependencies=[Depends(require_capability(Capability.ASSET_MANAGE))])
def update_asset(
    request: AssetUpdateRequest,
    asset_id: str = Path(..., description="Asset ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetResponse:
    """
    Partially update an asset.

    A manager must match both the current location and, when it changes,
    the new one.
    """
    changes = request.changes()

    with get_db_connection() as conn:
        asset = load_asset(conn, asset_id)
        ensure_can_manage(ctx, asset)
        if "location" in changes:
            ensure_can_manage(ctx, {**asset, "location": changes["location"]})
        if changes.get("serial_number"):
            _ensure_serial_free(conn, changes["serial_number"], exclude_id=asset_id)
        if "assigned_to" in changes:
            ensure_user_reference(conn, changes["assigned_to"])

        updated = asset_store.update_asset(conn, asset_id, changes)
        if updated is None:
            raise NotFoundError("Asset not found")

        if IS_DEV:
            print(f"[ASSETS] Updated asset_id={asset_id}, fields={sorted(changes)}, user_id={ctx.user_id}")

        return _to_response(conn, updated)


@router.delete("/{asset_id}", response_model=MessageResponse, dependencies=[Depends(require_capability(Capability.ASSET_MANAGE))])
def delete_asset(
    asset_id: str = Path(..., description="Asset ID to delete"),
    ctx: AuthContext = Depends(require_auth_context),
) -> MessageResponse:
    with get_db_connection() as conn:
        asset = load_asset(conn, asset_id)
        ensure_can_manage(ctx, asset)
        asset_store.delete_asset(conn, asset_id)

    if IS_DEV:
        print(f"[ASSETS] Deleted: asset_id={asset_id}, user_id={ctx.user_id}")

    return MessageResponse(message="Asset deleted successfully")


@router.post("/{asset_id}/maintenance", response_model=AssetResponse, dependencies=[Depends(require_capability(Capability.MAINTENANCE_ADD))])
def create_maintenance_record(
    request: MaintenanceCreateRequest,
    asset_id: str = Path(..., description="Asset ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetResponse:
    """
    Append a maintenance record.

    Admins always; managers within their department; employees only on an
    asset currently assigned to them.
    """
    with get_db_connection() as conn:
        updated = add_maintenance(conn, ctx, asset_id, request.model_dump())
        return _to_response(conn, updated)


@router.post("/{asset_id}/assign", response_model=AssetResponse, dependencies=[Depends(require_capability(Capability.ASSET_MANAGE))])
def assign_asset(
    request: AssignRequest,
    asset_id: str = Path(..., description="Asset ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetResponse:
    with get_db_connection() as conn:
        updated = assign(conn, ctx, asset_id, request.assigned_to)
        return _to_response(conn, updated)


@router.post("/{asset_id}/return", response_model=AssetResponse, dependencies=[Depends(require_capability(Capability.ASSET_MANAGE))])
def return_assigned_asset(
    asset_id: str = Path(..., description="Asset ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetResponse:
    with get_db_connection() as conn:
        updated = return_asset(conn, ctx, asset_id)
        return _to_response(conn, updated)
