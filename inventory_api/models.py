import datetime as dt
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Enums
class UserRole(str, Enum):
    admin = "admin"
    manager = "manager"
    employee = "employee"


class AssetType(str, Enum):
    equipment = "equipment"
    furniture = "furniture"
    electronics = "electronics"
    vehicle = "vehicle"
    software = "software"
    other = "other"


class AssetStatus(str, Enum):
    active = "active"
    maintenance = "maintenance"
    retired = "retired"
    lost = "lost"
    stolen = "stolen"


class AssetCondition(str, Enum):
    excellent = "excellent"
    good = "good"
    fair = "fair"
    poor = "poor"


class AssignmentAction(str, Enum):
    assigned = "assigned"
    returned = "returned"


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


def _strip_tags(v):
    if isinstance(v, list):
        return [t.strip() for t in v if isinstance(t, str) and t.strip()]
    return v


# Input types that trim surrounding whitespace before validation
TrimmedStr = Annotated[str, BeforeValidator(_strip)]
TagList = Annotated[List[str], BeforeValidator(_strip_tags)]


# Base model: snake_case in Python, camelCase on the wire
class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


# Embedded records (owned by an asset, no lifecycle of their own)
class MaintenanceRecord(CamelModel):
    date: dt.date
    description: TrimmedStr = Field(..., min_length=1, max_length=2000)
    cost: float = Field(..., ge=0)
    performed_by: TrimmedStr = Field(..., min_length=1, max_length=200)


class AssignmentEvent(CamelModel):
    action: AssignmentAction
    user_id: Optional[str] = None  # assignee (for returns: the previous assignee)
    performed_by: str  # id of the admin/manager who did it
    at: dt.datetime
