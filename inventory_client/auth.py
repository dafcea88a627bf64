"""
inventory_client/auth.py
Client-side session state for the inventory API.

ClientSession is a plain value object that callers hold and pass to every
ApiClient call. There is no module-global session: two sessions (say, an
admin and an employee in the same test) never see each other's token.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ClientSession:
    token: Optional[str] = None
    current_user: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def role(self) -> Optional[str]:
        return self.current_user.get("role")

    @property
    def user_id(self) -> Optional[str]:
        return self.current_user.get("id")

    def auth_header(self) -> Dict[str, str]:
        """Authorization header for protected calls ({} when signed out)."""
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def __repr__(self) -> str:
        # Never echo the token
        state = "authenticated" if self.token else "anonymous"
        return f"ClientSession({state}, user_id={self.user_id!r}, role={self.role!r})"


ANONYMOUS = ClientSession()


def session_from_auth_response(body: Dict[str, Any]) -> ClientSession:
    """Build a session from a register/login response body."""
    token = body.get("token")
    if not token:
        raise ValueError("Auth response did not include a token")
    return ClientSession(token=token, current_user=dict(body.get("user") or {}))
