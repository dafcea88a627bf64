"""
inventory_api/rbac.py

Role-Based Access Control for the asset inventory.

Two layers:
1. Capabilities: coarse role -> capability mapping, enforced by the
   require_capability() dependency before a handler runs.
2. Record policy: which asset/user rows a caller may see or mutate.
   Visibility is expressed as QueryPredicates so it is applied inside
   the query for every list and read.

Pure Python logic - no FastAPI imports, no database access.
"""

from typing import Any, Mapping, Optional, Set

from inventory_api.config import MANAGER_VISIBILITY
from inventory_api.filters import (
    MATCH_ALL,
    MATCH_NONE,
    QueryPredicate,
    contains_ci,
    equals,
    is_not_null,
    is_null,
    or_,
)


# ============================================================================
# Role Definitions
# ============================================================================

class Role:
    """Role constants for RBAC."""
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class Capability:
    """Capability strings checked by require_capability()."""
    ASSET_VIEW = "asset:view"
    ASSET_MANAGE = "asset:manage"          # create/update/delete/assign/return
    MAINTENANCE_ADD = "maintenance:add"
    USER_DIRECTORY = "user:directory"      # basic active-user list
    USER_VIEW = "user:view"                # full user list, team, assignment list
    USER_MANAGE = "user:manage"            # update/delete/toggle users


# ============================================================================
# Role to Capabilities Mapping
# ============================================================================

ROLE_CAPABILITIES: dict[str, Set[str]] = {
    Role.ADMIN: {
        Capability.ASSET_VIEW,
        Capability.ASSET_MANAGE,
        Capability.MAINTENANCE_ADD,
        Capability.USER_DIRECTORY,
        Capability.USER_VIEW,
        Capability.USER_MANAGE,
    },
    Role.MANAGER: {
        # Asset mutations are further narrowed to the manager's department
        Capability.ASSET_VIEW,
        Capability.ASSET_MANAGE,
        Capability.MAINTENANCE_ADD,
        Capability.USER_DIRECTORY,
        Capability.USER_VIEW,
    },
    Role.EMPLOYEE: {
        # Read-only, plus maintenance on their own assigned asset
        Capability.ASSET_VIEW,
        Capability.MAINTENANCE_ADD,
        Capability.USER_DIRECTORY,
    },
}


def role_capabilities(role: str) -> Set[str]:
    """Capabilities for a role (empty set for unknown roles)."""
    return ROLE_CAPABILITIES.get(role.lower() if role else "", set())


# ============================================================================
# Department Matching
# ============================================================================

def department_matches(department: Optional[str], location: Optional[str]) -> bool:
    """
    Case-insensitive substring test of a department against a free-text
    asset location ("IT" matches "IT Department" and "Main Office - it").

    An empty department matches nothing.
    """
    dept = (department or "").strip().lower()
    if not dept:
        return False
    return dept in (location or "").lower()


# ============================================================================
# Record Visibility (declarative policy)
# ============================================================================

def visibility_filter(role: str, department: Optional[str], user_id: str) -> QueryPredicate:
    """
    Predicate narrowing the assets table to what the caller may see.

    admin    -> everything
    manager  -> location matches department, OR unassigned, OR assigned.
                With MANAGER_VISIBILITY=department the last branch only
                covers assignees in the manager's own department.
    employee -> only assets assigned to themselves
    """
    if role == Role.ADMIN:
        return MATCH_ALL

    if role == Role.MANAGER:
        dept = (department or "").strip()
        in_department = contains_ci("location", dept) if dept else MATCH_NONE
        if MANAGER_VISIBILITY == "department":
            assigned_branch = _assignee_in_department(dept)
        else:
            assigned_branch = is_not_null("assigned_to")
        return or_(in_department, is_null("assigned_to"), assigned_branch)

    if role == Role.EMPLOYEE:
        return equals("assigned_to", user_id)

    return MATCH_NONE


def _assignee_in_department(department: str) -> QueryPredicate:
    if not department:
        return MATCH_NONE
    inner = equals("LOWER(u.department)", department.lower())
    return QueryPredicate(
        f"assigned_to IN (SELECT u.id FROM users u WHERE {inner.clause})",
        inner.params,
    )


def user_visibility_filter(role: str, department: Optional[str], user_id: str) -> QueryPredicate:
    """
    Predicate narrowing the users table.

    admin -> all users, manager -> own department, employee -> self only.
    """
    if role == Role.ADMIN:
        return MATCH_ALL
    if role == Role.MANAGER:
        return equals("department", department or "")
    if role == Role.EMPLOYEE:
        return equals("id", user_id)
    return MATCH_NONE


# ============================================================================
# Mutation Checks
# ============================================================================

def can_manage_asset(role: str, department: Optional[str], asset: Mapping[str, Any]) -> bool:
    """Create/update/delete/assign/return rights on a specific asset."""
    if role == Role.ADMIN:
        return True
    if role == Role.MANAGER:
        return department_matches(department, asset.get("location"))
    return False


def can_add_maintenance(role: str, department: Optional[str], user_id: str, asset: Mapping[str, Any]) -> bool:
    if role == Role.ADMIN:
        return True
    if role == Role.MANAGER:
        return department_matches(department, asset.get("location"))
    if role == Role.EMPLOYEE:
        return asset.get("assigned_to") == user_id
    return False
