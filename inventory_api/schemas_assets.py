"""
inventory_api/schemas_assets.py

Pydantic schemas for the Assets API.
Python fields are snake_case; the wire format is camelCase via CamelModel.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field

from inventory_api.errors import ValidationError
from inventory_api.models import (
    AssetCondition,
    AssetStatus,
    AssetType,
    AssignmentEvent,
    CamelModel,
    MaintenanceRecord,
    TagList,
    TrimmedStr,
)


# Columns a partial update may change but never null
REQUIRED_COLUMNS = (
    "name", "type", "category", "purchase_date", "purchase_price",
    "current_value", "location", "status", "condition",
)


# ========================================================================
# REQUESTS
# ========================================================================

class AssetCreateRequest(CamelModel):
    """Request schema for creating an asset.

    status and condition default to active/good. Money fields must be >= 0.
    """
    name: TrimmedStr = Field(..., min_length=1, max_length=200)
    type: AssetType
    category: TrimmedStr = Field(..., min_length=1, max_length=100)
    serial_number: Optional[TrimmedStr] = Field(None, max_length=100)
    model: Optional[TrimmedStr] = Field(None, max_length=100)
    manufacturer: Optional[TrimmedStr] = Field(None, max_length=100)
    purchase_date: date
    purchase_price: float = Field(..., ge=0)
    current_value: float = Field(..., ge=0)
    location: TrimmedStr = Field(..., min_length=1, max_length=200)
    assigned_to: Optional[TrimmedStr] = None
    status: AssetStatus = AssetStatus.active
    condition: AssetCondition = AssetCondition.good
    warranty_expiry: Optional[date] = None
    notes: Optional[TrimmedStr] = Field(None, max_length=5000)
    tags: TagList = Field(default_factory=list)


class AssetUpdateRequest(CamelModel):
    """Partial update. Only fields present in the body are written."""
    name: Optional[TrimmedStr] = Field(None, min_length=1, max_length=200)
    type: Optional[AssetType] = None
    category: Optional[TrimmedStr] = Field(None, min_length=1, max_length=100)
    serial_number: Optional[TrimmedStr] = Field(None, max_length=100)
    model: Optional[TrimmedStr] = Field(None, max_length=100)
    manufacturer: Optional[TrimmedStr] = Field(None, max_length=100)
    purchase_date: Optional[date] = None
    purchase_price: Optional[float] = Field(None, ge=0)
    current_value: Optional[float] = Field(None, ge=0)
    location: Optional[TrimmedStr] = Field(None, min_length=1, max_length=200)
    assigned_to: Optional[TrimmedStr] = None
    status: Optional[AssetStatus] = None
    condition: Optional[AssetCondition] = None
    warranty_expiry: Optional[date] = None
    notes: Optional[TrimmedStr] = Field(None, max_length=5000)
    tags: Optional[TagList] = None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly sent by the client; required columns may not be nulled."""
        data = self.model_dump(exclude_unset=True)
        nulled = [k for k in REQUIRED_COLUMNS if k in data and data[k] is None]
        if nulled:
            raise ValidationError("Failed to update asset", details=[f"{k} cannot be null" for k in nulled])
        if "tags" in data and data["tags"] is None:
            data["tags"] = []
        if data.get("assigned_to") == "":
            data["assigned_to"] = None
        return data


class MaintenanceCreateRequest(MaintenanceRecord):
    """Body of POST /assets/{id}/maintenance."""


class AssignRequest(CamelModel):
    assigned_to: TrimmedStr = Field(..., description="Id of the user receiving the asset")


# ========================================================================
# RESPONSES
# ========================================================================

class AssigneeSummary(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str
    employee_id: str
    department: Optional[str] = None


class AssetResponse(CamelModel):
    """Public asset shape. assignedTo is expanded into a user summary."""
    id: str
    name: str
    type: AssetType
    category: str
    serial_number: Optional[str] = None
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    purchase_date: date
    purchase_price: float
    current_value: float
    location: str
    assigned_to: Optional[AssigneeSummary] = None
    status: AssetStatus
    condition: AssetCondition
    warranty_expiry: Optional[date] = None
    maintenance_history: List[MaintenanceRecord] = Field(default_factory=list)
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: dict, assignees: Dict[str, dict], with_department: bool = False) -> "AssetResponse":
        assignee = assignees.get(row.get("assigned_to") or "")
        summary = None
        if assignee:
            summary = AssigneeSummary(
                id=assignee["id"],
                first_name=assignee["first_name"],
                last_name=assignee["last_name"],
                email=assignee["email"],
                employee_id=assignee["employee_id"],
                department=assignee.get("department") if with_department else None,
            )
        return cls.model_validate({**row, "assigned_to": summary})


class PaginationInfo(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class AssetListResponse(CamelModel):
    assets: List[AssetResponse] = Field(default_factory=list)
    pagination: PaginationInfo


class AssetHistoryResponse(CamelModel):
    asset_id: str
    name: str
    assigned_to: Optional[AssigneeSummary] = None
    maintenance_history: List[MaintenanceRecord] = Field(default_factory=list)
    assignment_history: List[AssignmentEvent] = Field(default_factory=list)


class TypeCount(CamelModel):
    type: str
    count: int


class ConditionCount(CamelModel):
    condition: str
    count: int


class AssetStatsResponse(CamelModel):
    total_assets: int
    active_assets: int
    maintenance_assets: int
    retired_assets: int
    total_value: float
    assets_by_type: List[TypeCount] = Field(default_factory=list)
    assets_by_condition: List[ConditionCount] = Field(default_factory=list)


class MessageResponse(CamelModel):
    message: str
