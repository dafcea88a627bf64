"""
inventory_client/api_client.py
Centralized API client for the inventory backend.

This module ensures:
1. Every protected call attaches the session's Authorization header
2. Consistent error mapping (401 -> SessionExpired, 403 -> PermissionDenied)
3. Connection failures and timeouts surface as BackendUnavailable
4. Tokens never appear in logs or exception messages
"""

from typing import Any, Dict, List, Literal, Optional

import requests

from inventory_client.auth import ANONYMOUS, ClientSession, session_from_auth_response
from inventory_client.config import IS_DEV, REQUEST_TIMEOUT, get_api_base_url

__all__ = [
    "ApiClient",
    "ApiError",
    "BackendUnavailable",
    "PermissionDenied",
    "SessionExpired",
]

Method = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

PUBLIC_PATHS = ("/auth/login", "/auth/register")


class ApiError(Exception):
    """Backend answered with an error status."""

    def __init__(self, status_code: int, message: str, details: Any = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.details = details


class SessionExpired(ApiError):
    """401: missing, expired or rejected token. Sign in again."""


class PermissionDenied(ApiError):
    """403: signed in, but the role or department does not allow it."""


class BackendUnavailable(Exception):
    """The backend could not be reached (connection error or timeout)."""


def is_public_endpoint(path: str) -> bool:
    return path in PUBLIC_PATHS


class ApiClient:
    """
    Thin wrapper over requests with one method per REST endpoint.

    Every protected method takes the ClientSession explicitly.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: int = REQUEST_TIMEOUT, http=None):
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    # ---------------------------------------------------------
    # Core request
    # ---------------------------------------------------------
    def request(
        self,
        method: Method,
        path: str,
        session: ClientSession = ANONYMOUS,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            SessionExpired: 401
            PermissionDenied: 403
            ApiError: any other status >= 400
            BackendUnavailable: connection error or timeout
        """
        headers = {"Accept": "application/json"}
        if not is_public_endpoint(path):
            headers.update(session.auth_header())

        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            resp = self.http.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            if IS_DEV:
                print(f"[API] Timeout on {method} {path}")
            raise BackendUnavailable(f"Request timed out after {self.timeout}s")
        except requests.exceptions.ConnectionError:
            if IS_DEV:
                print(f"[API] Connection error on {method} {path}")
            raise BackendUnavailable(f"Cannot connect to backend at {self.base_url}")

        if resp.status_code >= 400:
            raise self._error_for(resp)

        if IS_DEV:
            print(f"[API] {method} {path} -> {resp.status_code}")

        if not resp.content:
            return None
        return resp.json()

    @staticmethod
    def _error_for(resp) -> ApiError:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("error") or resp.reason or "Request failed"
        details = body.get("details")

        if resp.status_code == 401:
            return SessionExpired(401, message, details)
        if resp.status_code == 403:
            return PermissionDenied(403, message, details)
        return ApiError(resp.status_code, message, details)

    # ---------------------------------------------------------
    # Auth
    # ---------------------------------------------------------
    def register(self, payload: Dict[str, Any]) -> ClientSession:
        return session_from_auth_response(self.request("POST", "/auth/register", json=payload))

    def login(self, email: str, password: str) -> ClientSession:
        body = self.request("POST", "/auth/login", json={"email": email, "password": password})
        return session_from_auth_response(body)

    def me(self, session: ClientSession) -> Dict[str, Any]:
        return self.request("GET", "/auth/me", session)

    def update_me(self, session: ClientSession, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", "/auth/me", session, json=changes)

    def change_password(self, session: ClientSession, current_password: str, new_password: str) -> Dict[str, Any]:
        return self.request(
            "PUT",
            "/auth/change-password",
            session,
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    # ---------------------------------------------------------
    # Assets
    # ---------------------------------------------------------
    def list_assets(self, session: ClientSession, **filters: Any) -> Dict[str, Any]:
        """filters: page, limit, type, status, location, assignedTo, search, sortBy, sortOrder"""
        return self.request("GET", "/assets", session, params=filters)

    def get_asset(self, session: ClientSession, asset_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/assets/{asset_id}", session)

    def create_asset(self, session: ClientSession, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/assets", session, json=payload)

    def update_asset(self, session: ClientSession, asset_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/assets/{asset_id}", session, json=changes)

    def delete_asset(self, session: ClientSession, asset_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"/assets/{asset_id}", session)

    def add_maintenance(self, session: ClientSession, asset_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", f"/assets/{asset_id}/maintenance", session, json=record)

    def assign_asset(self, session: ClientSession, asset_id: str, user_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/assets/{asset_id}/assign", session, json={"assignedTo": user_id})

    def return_asset(self, session: ClientSession, asset_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/assets/{asset_id}/return", session)

    def asset_history(self, session: ClientSession, asset_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/assets/{asset_id}/history", session)

    def asset_stats(self, session: ClientSession) -> Dict[str, Any]:
        return self.request("GET", "/assets/stats/overview", session)

    # ---------------------------------------------------------
    # Users
    # ---------------------------------------------------------
    def list_users(self, session: ClientSession, **filters: Any) -> Dict[str, Any]:
        """filters: page, limit, department, role, search"""
        return self.request("GET", "/users", session, params=filters)

    def get_user(self, session: ClientSession, user_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/users/{user_id}", session)

    def update_user(self, session: ClientSession, user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/users/{user_id}", session, json=changes)

    def delete_user(self, session: ClientSession, user_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"/users/{user_id}", session)

    def toggle_user_status(self, session: ClientSession, user_id: str) -> Dict[str, Any]:
        return self.request("PATCH", f"/users/{user_id}/toggle-status", session)

    def basic_users(self, session: ClientSession) -> List[Dict[str, Any]]:
        return self.request("GET", "/users/basic/list", session)["users"]

    def team_members(self, session: ClientSession) -> List[Dict[str, Any]]:
        return self.request("GET", "/users/team/members", session)["teamMembers"]

    def assignable_users(self, session: ClientSession) -> List[Dict[str, Any]]:
        return self.request("GET", "/users/assignment/list", session)["users"]

    def user_profile(self, session: ClientSession, user_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/users/profile/{user_id}", session)

    # ---------------------------------------------------------
    # Misc
    # ---------------------------------------------------------
    def health(self) -> bool:
        """True when the backend answers /health (which lives outside /api)."""
        root = self.base_url[: -len("/api")] if self.base_url.endswith("/api") else self.base_url
        try:
            resp = self.http.get(f"{root}/health", timeout=self.timeout)
        except requests.exceptions.RequestException:
            return False
        return resp.status_code == 200
