"""
inventory_api/user_store.py

Data access for the users table.

Every function takes an open connection so callers control the transaction.
The password hash only leaves this module through get_user_credentials().
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection

from inventory_api.db import fetch_all, fetch_one, new_id, now_iso
from inventory_api.filters import MATCH_ALL, Page, QueryPredicate, and_, equals, search_any

PUBLIC_COLUMNS = (
    "id, first_name, last_name, email, role, department, position, employee_id, "
    "phone, avatar, is_active, last_login, created_at, updated_at"
)

BASIC_COLUMNS = "id, first_name, last_name, department, role"

# Fields a caller may write through create/update
WRITABLE_FIELDS = {
    "first_name",
    "last_name",
    "email",
    "role",
    "department",
    "position",
    "employee_id",
    "phone",
    "avatar",
    "is_active",
}

SEARCH_COLUMNS = ("first_name", "last_name", "email", "employee_id")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user(conn: Connection, user_id: str, predicate: QueryPredicate = MATCH_ALL) -> Optional[dict]:
    """Fetch one user (without password hash), narrowed by predicate."""
    scoped = and_(equals("id", user_id), predicate)
    return fetch_one(conn, f"SELECT {PUBLIC_COLUMNS} FROM users {scoped.where()}", scoped.params)


def get_user_credentials(conn: Connection, email: str) -> Optional[dict]:
    """Fetch a user by email including password_hash (login only)."""
    return fetch_one(
        conn,
        f"SELECT {PUBLIC_COLUMNS}, password_hash FROM users WHERE email = :email",
        {"email": normalize_email(email)},
    )


def get_password_hash(conn: Connection, user_id: str) -> Optional[str]:
    row = fetch_one(conn, "SELECT password_hash FROM users WHERE id = :id", {"id": user_id})
    return row["password_hash"] if row else None


def user_exists(conn: Connection, user_id: str) -> bool:
    return fetch_one(conn, "SELECT id FROM users WHERE id = :id", {"id": user_id}) is not None


def find_duplicate(
    conn: Connection,
    email: Optional[str] = None,
    employee_id: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> Optional[dict]:
    """Return a user that already holds the email or employee ID, if any."""
    clauses = []
    params: Dict[str, Any] = {}
    if email:
        clauses.append("email = :email")
        params["email"] = normalize_email(email)
    if employee_id:
        clauses.append("employee_id = :employee_id")
        params["employee_id"] = employee_id.strip()
    if not clauses:
        return None

    query = f"SELECT id, email, employee_id FROM users WHERE ({' OR '.join(clauses)})"
    if exclude_id:
        query += " AND id <> :exclude_id"
        params["exclude_id"] = exclude_id
    return fetch_one(conn, query, params)


def create_user(conn: Connection, data: Dict[str, Any], password_hash: str) -> dict:
    user_id = new_id()
    now = now_iso()
    row = {
        "id": user_id,
        "first_name": data["first_name"],
        "last_name": data["last_name"],
        "email": normalize_email(data["email"]),
        "password_hash": password_hash,
        "role": data.get("role") or "employee",
        "department": data["department"],
        "position": data.get("position"),
        "employee_id": data["employee_id"].strip(),
        "phone": data.get("phone"),
        "avatar": data.get("avatar"),
        "is_active": 1 if data.get("is_active", True) else 0,
        "created_at": now,
        "updated_at": now,
    }
    conn.execute(
        text(
            """
            INSERT INTO users (
                id, first_name, last_name, email, password_hash, role, department,
                position, employee_id, phone, avatar, is_active, created_at, updated_at
            ) VALUES (
                :id, :first_name, :last_name, :email, :password_hash, :role, :department,
                :position, :employee_id, :phone, :avatar, :is_active, :created_at, :updated_at
            )
            """
        ),
        row,
    )
    return get_user(conn, user_id)


def update_user(conn: Connection, user_id: str, updates: Dict[str, Any]) -> Optional[dict]:
    """Apply a partial update. Unknown keys are ignored."""
    fields = {k: v for k, v in updates.items() if k in WRITABLE_FIELDS}
    if "email" in fields and fields["email"]:
        fields["email"] = normalize_email(fields["email"])
    if "employee_id" in fields and fields["employee_id"]:
        fields["employee_id"] = fields["employee_id"].strip()
    if "is_active" in fields:
        fields["is_active"] = 1 if fields["is_active"] else 0

    if not fields:
        return get_user(conn, user_id)

    fields["updated_at"] = now_iso()
    assignments = ", ".join(f"{k} = :{k}" for k in fields)
    result = conn.execute(
        text(f"UPDATE users SET {assignments} WHERE id = :user_id"),
        {**fields, "user_id": user_id},
    )
    if result.rowcount == 0:
        return None
    return get_user(conn, user_id)


def set_password_hash(conn: Connection, user_id: str, password_hash: str) -> None:
    conn.execute(
        text("UPDATE users SET password_hash = :h, updated_at = :now WHERE id = :id"),
        {"h": password_hash, "now": now_iso(), "id": user_id},
    )


def touch_last_login(conn: Connection, user_id: str) -> None:
    now = now_iso()
    conn.execute(
        text("UPDATE users SET last_login = :now, updated_at = :now WHERE id = :id"),
        {"now": now, "id": user_id},
    )


def delete_user(conn: Connection, user_id: str) -> bool:
    """Delete a user, first clearing every assignment that points at them."""
    conn.execute(
        text("UPDATE assets SET assigned_to = NULL, updated_at = :now WHERE assigned_to = :id"),
        {"now": now_iso(), "id": user_id},
    )
    result = conn.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
    return result.rowcount > 0


def list_users(
    conn: Connection,
    predicate: QueryPredicate,
    page: Page,
    department: Optional[str] = None,
    role: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[dict], int]:
    """Paginated user listing. Returns (rows, total)."""
    scoped = and_(
        predicate,
        equals("department", department) if department else None,
        equals("role", role) if role else None,
        search_any(SEARCH_COLUMNS, search) if search else None,
    )
    total = conn.execute(
        text(f"SELECT COUNT(*) FROM users {scoped.where()}"), scoped.params
    ).scalar_one()
    rows = fetch_all(
        conn,
        f"SELECT {PUBLIC_COLUMNS} FROM users {scoped.where()} "
        f"ORDER BY created_at DESC LIMIT :limit OFFSET :offset",
        {**scoped.params, "limit": page.limit, "offset": page.offset},
    )
    return rows, total


def list_active_basic(conn: Connection) -> List[dict]:
    """Name/department/role of every active user, by first name."""
    return fetch_all(
        conn,
        f"SELECT {BASIC_COLUMNS} FROM users WHERE is_active = 1 ORDER BY first_name ASC",
    )


def list_members(conn: Connection, predicate: QueryPredicate, active_only: bool = False) -> List[dict]:
    """Users under predicate, each with the count of assets assigned to them."""
    scoped = and_(predicate, equals("is_active", 1) if active_only else None)
    cols = ", ".join(f"users.{c.strip()}" for c in PUBLIC_COLUMNS.split(","))
    return fetch_all(
        conn,
        f"""
        SELECT {cols},
               (SELECT COUNT(*) FROM assets a WHERE a.assigned_to = users.id) AS assigned_asset_count
        FROM users
        {scoped.where()}
        ORDER BY users.first_name ASC, users.last_name ASC
        """,
        scoped.params,
    )
