"""
inventory_api/schemas_users.py

Pydantic schemas for the auth and users APIs.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BeforeValidator, EmailStr, Field, field_validator

from inventory_api.models import CamelModel, TrimmedStr, UserRole, _strip
from inventory_api.schemas_assets import AssetResponse, PaginationInfo

MIN_PASSWORD_LENGTH = 6
# bcrypt only hashes the first 72 bytes and refuses longer input
MAX_PASSWORD_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_strip), AfterValidator(str.lower)]
NewPassword = Annotated[str, Field(min_length=MIN_PASSWORD_LENGTH), AfterValidator(_check_password_bytes)]


# ========================================================================
# REQUESTS
# ========================================================================

class RegisterRequest(CamelModel):
    """Self-registration. Any role sent by the client is ignored."""
    first_name: TrimmedStr = Field(..., min_length=1, max_length=100)
    last_name: TrimmedStr = Field(..., min_length=1, max_length=100)
    email: NormalizedEmail
    password: NewPassword
    department: TrimmedStr = Field(..., min_length=1, max_length=100)
    position: Optional[TrimmedStr] = Field(None, max_length=100)
    employee_id: TrimmedStr = Field(..., min_length=1, max_length=50)
    phone: Optional[TrimmedStr] = Field(None, max_length=50)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdateRequest(CamelModel):
    """PUT /auth/me. password, role and isActive are not accepted here."""
    first_name: Optional[TrimmedStr] = Field(None, min_length=1, max_length=100)
    last_name: Optional[TrimmedStr] = Field(None, min_length=1, max_length=100)
    email: Optional[NormalizedEmail] = None
    department: Optional[TrimmedStr] = Field(None, min_length=1, max_length=100)
    position: Optional[TrimmedStr] = Field(None, max_length=100)
    employee_id: Optional[TrimmedStr] = Field(None, min_length=1, max_length=50)
    phone: Optional[TrimmedStr] = Field(None, max_length=50)
    avatar: Optional[TrimmedStr] = Field(None, max_length=255)

    def changes(self) -> Dict[str, Any]:
        # Required columns cannot be cleared through a partial update
        data = self.model_dump(exclude_unset=True)
        for key in ("first_name", "last_name", "email", "department", "employee_id"):
            if key in data and data[key] is None:
                del data[key]
        return data


class AdminUserUpdateRequest(ProfileUpdateRequest):
    """PUT /users/{id}. Admins may also change role and active flag."""
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        data = super().changes()
        for key in ("role", "is_active"):
            if key in data and data[key] is None:
                del data[key]
        return data


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: NewPassword


# ========================================================================
# RESPONSES
# ========================================================================

class UserResponse(CamelModel):
    """Public user shape. There is no password field."""
    id: str
    first_name: str
    last_name: str
    email: str
    role: UserRole
    department: str
    position: Optional[str] = None
    employee_id: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    last_login: Optional[str] = None
    created_at: str
    updated_at: str


class BasicUserResponse(CamelModel):
    id: str
    first_name: str
    last_name: str
    department: str
    role: UserRole


class BasicUserListResponse(CamelModel):
    users: List[BasicUserResponse] = Field(default_factory=list)


class TeamMemberResponse(UserResponse):
    assigned_asset_count: int = 0


class TeamMembersResponse(CamelModel):
    team_members: List[TeamMemberResponse] = Field(default_factory=list)


class AssignableUsersResponse(CamelModel):
    users: List[UserResponse] = Field(default_factory=list)


class UserListResponse(CamelModel):
    users: List[UserResponse] = Field(default_factory=list)
    pagination: PaginationInfo


class UserProfileResponse(CamelModel):
    user: UserResponse
    assigned_assets: List[AssetResponse] = Field(default_factory=list)


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class ToggleStatusResponse(CamelModel):
    message: str
    is_active: bool
