"""
inventory_api/dependencies.py

Reusable FastAPI dependencies for authorization and request parsing.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, Query

from inventory_api.auth_context import AuthContext, require_auth_context
from inventory_api.config import DEFAULT_PAGE_LIMIT, IS_DEV, MAX_PAGE_LIMIT
from inventory_api.errors import AuthorizationError
from inventory_api.filters import Page
from inventory_api.rbac import Capability


def require_capability(capability: str) -> Callable:
    """
    FastAPI dependency factory for role-based capability authorization.

    Runs before the handler touches any record, so a role that lacks the
    capability gets 403 without learning whether the target exists.

    Usage in routes:
        @router.get("", dependencies=[Depends(require_capability(Capability.USER_VIEW))])
        def list_users(ctx: AuthContext = Depends(require_auth_context)):
            ...

    Raises:
        AuthorizationError(403): If the caller's role lacks the capability
    """
    def _check_capability(ctx: AuthContext = Depends(require_auth_context)) -> AuthContext:
        if capability not in ctx.capabilities:
            if IS_DEV:
                print(f"[AUTHZ] Capability denied: capability={capability}, role={ctx.role}")
            raise AuthorizationError(_denial_message(capability))

        if IS_DEV:
            print(f"[AUTHZ] Capability granted: capability={capability}, role={ctx.role}")
        return ctx

    return _check_capability


DENIAL_MESSAGES = {
    Capability.USER_MANAGE: "Access denied. Admin privileges required.",
    Capability.USER_VIEW: "Access denied. Manager privileges required.",
    Capability.ASSET_MANAGE: "Access denied. Manager privileges required.",
}


def _denial_message(capability: str) -> str:
    return DENIAL_MESSAGES.get(capability, "Access denied.")


def pagination(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT, description="Items per page"),
) -> Page:
    return Page(page=page, limit=limit)
