"""
inventory_api/asset_store.py

Data access for the assets table.

Maintenance and assignment logs are embedded on the asset row as JSON
arrays (the asset owns them; they have no lifecycle of their own). Both
are only ever appended to.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection

from inventory_api.db import dump_json, fetch_all, fetch_one, json_append_sql, load_json_list, new_id, now_iso
from inventory_api.filters import (
    MATCH_ALL,
    Page,
    QueryPredicate,
    and_,
    contains_ci,
    equals,
    search_any,
)

COLUMNS = (
    "id, name, type, category, serial_number, model, manufacturer, purchase_date, "
    "purchase_price, current_value, location, assigned_to, status, condition, "
    "warranty_expiry, maintenance_history, assignment_history, notes, tags, "
    "created_at, updated_at"
)

# Writable through create/update (the logs have their own append paths)
WRITABLE_FIELDS = {
    "name",
    "type",
    "category",
    "serial_number",
    "model",
    "manufacturer",
    "purchase_date",
    "purchase_price",
    "current_value",
    "location",
    "assigned_to",
    "status",
    "condition",
    "warranty_expiry",
    "notes",
    "tags",
}

SEARCH_COLUMNS = ("name", "serial_number", "manufacturer", "model")

# API sort key -> column
SORT_COLUMNS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "type": "type",
    "status": "status",
    "purchaseDate": "purchase_date",
    "purchasePrice": "purchase_price",
    "currentValue": "current_value",
    "location": "location",
}

ASSIGNEE_COLUMNS = "id, first_name, last_name, email, employee_id, department"


def _decode(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    row["maintenance_history"] = load_json_list(row.get("maintenance_history"))
    row["assignment_history"] = load_json_list(row.get("assignment_history"))
    row["tags"] = load_json_list(row.get("tags"))
    return row


def _encode(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    if "tags" in out:
        out["tags"] = dump_json(out["tags"] or [])
    for key in ("purchase_date", "warranty_expiry"):
        if out.get(key) is not None:
            out[key] = out[key].isoformat() if hasattr(out[key], "isoformat") else str(out[key])
    if "serial_number" in out and not out["serial_number"]:
        # Empty serials are stored as NULL so uniqueness stays sparse
        out["serial_number"] = None
    return out


def get_asset(conn: Connection, asset_id: str, predicate: QueryPredicate = MATCH_ALL) -> Optional[dict]:
    """Fetch one asset narrowed by predicate (None if missing or not visible)."""
    scoped = and_(equals("id", asset_id), predicate)
    return _decode(fetch_one(conn, f"SELECT {COLUMNS} FROM assets {scoped.where()}", scoped.params))


def serial_in_use(conn: Connection, serial_number: Optional[str], exclude_id: Optional[str] = None) -> bool:
    if not serial_number:
        return False
    query = "SELECT id FROM assets WHERE serial_number = :serial"
    params: Dict[str, Any] = {"serial": serial_number}
    if exclude_id:
        query += " AND id <> :exclude_id"
        params["exclude_id"] = exclude_id
    return fetch_one(conn, query, params) is not None


def create_asset(conn: Connection, data: Dict[str, Any]) -> dict:
    asset_id = new_id()
    now = now_iso()
    fields = _encode({k: v for k, v in data.items() if k in WRITABLE_FIELDS})
    fields.setdefault("tags", "[]")
    row = {
        **fields,
        "id": asset_id,
        "maintenance_history": "[]",
        "assignment_history": "[]",
        "created_at": now,
        "updated_at": now,
    }
    columns = ", ".join(row)
    values = ", ".join(f":{k}" for k in row)
    conn.execute(text(f"INSERT INTO assets ({columns}) VALUES ({values})"), row)
    return get_asset(conn, asset_id)


def update_asset(conn: Connection, asset_id: str, updates: Dict[str, Any]) -> Optional[dict]:
    """Apply a partial update. Unknown keys are ignored."""
    fields = _encode({k: v for k, v in updates.items() if k in WRITABLE_FIELDS})
    if not fields:
        return get_asset(conn, asset_id)

    fields["updated_at"] = now_iso()
    assignments = ", ".join(f"{k} = :{k}" for k in fields)
    result = conn.execute(
        text(f"UPDATE assets SET {assignments} WHERE id = :asset_id"),
        {**fields, "asset_id": asset_id},
    )
    if result.rowcount == 0:
        return None
    return get_asset(conn, asset_id)


def delete_asset(conn: Connection, asset_id: str) -> bool:
    result = conn.execute(text("DELETE FROM assets WHERE id = :id"), {"id": asset_id})
    return result.rowcount > 0


def set_assignment(conn: Connection, asset_id: str, assigned_to: Optional[str], event: dict) -> Optional[dict]:
    """
    Set (or clear) the assignee and append an assignment event.
    Single-row update; the last writer wins on the assignee, the log keeps every event.
    """
    conn.execute(
        text(
            "UPDATE assets SET assigned_to = :assigned_to, "
            f"assignment_history = {json_append_sql('assignment_history', 'event')}, "
            "updated_at = :now WHERE id = :id"
        ),
        {"assigned_to": assigned_to, "event": json.dumps(event, default=str), "now": now_iso(), "id": asset_id},
    )
    return get_asset(conn, asset_id)


def append_maintenance(conn: Connection, asset_id: str, record: Dict[str, Any]) -> Optional[dict]:
    conn.execute(
        text(
            f"UPDATE assets SET maintenance_history = {json_append_sql('maintenance_history', 'record')}, "
            "updated_at = :now WHERE id = :id"
        ),
        {"record": json.dumps(record, default=str), "now": now_iso(), "id": asset_id},
    )
    return get_asset(conn, asset_id)


def build_list_filter(
    type: Optional[str] = None,
    status: Optional[str] = None,
    location: Optional[str] = None,
    assigned_to: Optional[str] = None,
    search: Optional[str] = None,
) -> QueryPredicate:
    """Request-level filters for the asset list (AND-ed together)."""
    return and_(
        equals("type", type) if type else None,
        equals("status", status) if status else None,
        contains_ci("location", location) if location else None,
        equals("assigned_to", assigned_to) if assigned_to else None,
        search_any(SEARCH_COLUMNS, search) if search else None,
    )


def list_assets(
    conn: Connection,
    predicate: QueryPredicate,
    page: Page,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> Tuple[List[dict], int]:
    """Paginated asset listing. Returns (rows, total)."""
    column = SORT_COLUMNS[sort_by]
    direction = "ASC" if sort_order == "asc" else "DESC"
    total = conn.execute(
        text(f"SELECT COUNT(*) FROM assets {predicate.where()}"), predicate.params
    ).scalar_one()
    rows = fetch_all(
        conn,
        f"SELECT {COLUMNS} FROM assets {predicate.where()} "
        f"ORDER BY {column} {direction}, id ASC LIMIT :limit OFFSET :offset",
        {**predicate.params, "limit": page.limit, "offset": page.offset},
    )
    return [_decode(r) for r in rows], total


def list_assigned_to(conn: Connection, user_id: str) -> List[dict]:
    rows = fetch_all(
        conn,
        f"SELECT {COLUMNS} FROM assets WHERE assigned_to = :uid ORDER BY name ASC",
        {"uid": user_id},
    )
    return [_decode(r) for r in rows]


def get_assignees(conn: Connection, user_ids: Iterable[Optional[str]]) -> Dict[str, dict]:
    """Summaries of the users referenced by a batch of assets, keyed by id."""
    ids = sorted({u for u in user_ids if u})
    if not ids:
        return {}
    params = {f"uid_{i}": uid for i, uid in enumerate(ids)}
    placeholders = ", ".join(f":{k}" for k in params)
    rows = fetch_all(conn, f"SELECT {ASSIGNEE_COLUMNS} FROM users WHERE id IN ({placeholders})", params)
    return {r["id"]: r for r in rows}


def stats(conn: Connection, predicate: QueryPredicate) -> Dict[str, Any]:
    """Counts and value totals over the assets visible under predicate."""
    where = predicate.where()
    params = predicate.params
    totals = fetch_one(
        conn,
        f"""
        SELECT COUNT(*) AS total_assets,
               SUM(CASE WHEN status = 'active' THEN 1 ELSE 0 END) AS active_assets,
               SUM(CASE WHEN status = 'maintenance' THEN 1 ELSE 0 END) AS maintenance_assets,
               SUM(CASE WHEN status = 'retired' THEN 1 ELSE 0 END) AS retired_assets,
               COALESCE(SUM(current_value), 0) AS total_value
        FROM assets {where}
        """,
        params,
    ) or {}
    by_type = fetch_all(
        conn,
        f"SELECT type, COUNT(*) AS count FROM assets {where} GROUP BY type ORDER BY type",
        params,
    )
    by_condition = fetch_all(
        conn,
        f"SELECT condition, COUNT(*) AS count FROM assets {where} GROUP BY condition ORDER BY condition",
        params,
    )
    return {
        "totalAssets": int(totals.get("total_assets") or 0),
        "activeAssets": int(totals.get("active_assets") or 0),
        "maintenanceAssets": int(totals.get("maintenance_assets") or 0),
        "retiredAssets": int(totals.get("retired_assets") or 0),
        "totalValue": float(totals.get("total_value") or 0),
        "assetsByType": [{"type": r["type"], "count": int(r["count"])} for r in by_type],
        "assetsByCondition": [{"condition": r["condition"], "count": int(r["count"])} for r in by_condition],
    }
