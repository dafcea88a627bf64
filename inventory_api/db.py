# inventory_api/db.py
# Database layer: SQLAlchemy engine over SQLite (dev) or PostgreSQL (production)

import json
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Iterable, List, Optional, Union
from urllib.parse import urlparse

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from inventory_api.config import DATABASE_URL, IS_DEV, IS_POSTGRES, IS_SQLITE

# Global engine, created lazily so tests can point DATABASE_URL elsewhere first
_engine: Union[Engine, None] = None


def init_engine() -> Engine:
    """Initialize the SQLAlchemy engine for DATABASE_URL."""
    global _engine

    parsed = urlparse(DATABASE_URL)
    if not parsed.scheme:
        raise ValueError(f"Invalid DATABASE_URL: {DATABASE_URL[:20]}...")

    if IS_SQLITE:
        # Sync FastAPI handlers run on a threadpool
        _engine = create_engine(
            DATABASE_URL,
            connect_args={"check_same_thread": False},
            echo=False,
        )
        print(f"[DB] Using SQLite ({parsed.path.lstrip('/') or ':memory:'})")
    else:
        _engine = create_engine(
            DATABASE_URL,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,  # Verify connections before use
            echo=False,
        )
        print(f"[DB] Using PostgreSQL ({parsed.hostname})")

    return _engine


def get_engine() -> Engine:
    if _engine is None:
        return init_engine()
    return _engine


@contextmanager
def get_db_connection() -> Generator[Connection, None, None]:
    """
    Context manager yielding a connection inside a transaction.
    Commits on clean exit, rolls back if the block raises.
    """
    with get_engine().begin() as conn:
        yield conn


# ---------------------------------------------------------
# Schema
# ---------------------------------------------------------
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'employee'
            CHECK (role IN ('admin', 'manager', 'employee')),
        department TEXT NOT NULL,
        position TEXT,
        employee_id TEXT NOT NULL UNIQUE,
        phone TEXT,
        avatar TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        last_login TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_users_department ON users(department)",
    "CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)",
    """
    CREATE TABLE IF NOT EXISTS assets (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL
            CHECK (type IN ('equipment', 'furniture', 'electronics', 'vehicle', 'software', 'other')),
        category TEXT NOT NULL,
        serial_number TEXT UNIQUE,
        model TEXT,
        manufacturer TEXT,
        purchase_date TEXT NOT NULL,
        purchase_price REAL NOT NULL CHECK (purchase_price >= 0),
        current_value REAL NOT NULL CHECK (current_value >= 0),
        location TEXT NOT NULL,
        assigned_to TEXT REFERENCES users(id),
        status TEXT NOT NULL DEFAULT 'active'
            CHECK (status IN ('active', 'maintenance', 'retired', 'lost', 'stolen')),
        condition TEXT NOT NULL DEFAULT 'good'
            CHECK (condition IN ('excellent', 'good', 'fair', 'poor')),
        warranty_expiry TEXT,
        maintenance_history TEXT NOT NULL DEFAULT '[]',
        assignment_history TEXT NOT NULL DEFAULT '[]',
        notes TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_assets_name ON assets(name)",
    "CREATE INDEX IF NOT EXISTS idx_assets_type ON assets(type)",
    "CREATE INDEX IF NOT EXISTS idx_assets_status ON assets(status)",
    "CREATE INDEX IF NOT EXISTS idx_assets_assigned_to ON assets(assigned_to)",
    "CREATE INDEX IF NOT EXISTS idx_assets_location ON assets(location)",
]


def init_db() -> None:
    """Create tables and indexes if missing (idempotent)."""
    with get_db_connection() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    if IS_DEV:
        print("[DB] Schema ensured (users, assets)")


def clear_db() -> None:
    """Delete every row. Used by the seed --reset flag and tests."""
    with get_db_connection() as conn:
        conn.execute(text("DELETE FROM assets"))
        conn.execute(text("DELETE FROM users"))


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value: Any) -> bool:
    """True for the 32-char hex ids this store generates."""
    if not isinstance(value, str) or len(value) != 32:
        return False
    try:
        return uuid.UUID(hex=value).hex == value
    except ValueError:
        return False


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def fetch_one(conn: Connection, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[dict]:
    row = conn.execute(text(query), params or {}).mappings().first()
    return dict(row) if row is not None else None


def fetch_all(conn: Connection, query: str, params: Optional[Dict[str, Any]] = None) -> List[dict]:
    return [dict(r) for r in conn.execute(text(query), params or {}).mappings().all()]


def dump_json(value: Iterable) -> str:
    return json.dumps(list(value), default=str)


def load_json_list(raw: Optional[str]) -> list:
    """Parse a JSON array column, tolerating NULL or garbage."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


def json_append_sql(column: str, param: str) -> str:
    """
    SQL expression appending the JSON value bound to :param onto the array
    stored in column. Used inside an UPDATE so concurrent appends are never
    lost to a read-modify-write race.
    """
    if IS_POSTGRES:
        return f"CAST(CAST({column} AS jsonb) || jsonb_build_array(CAST(:{param} AS jsonb)) AS text)"
    return f"json_insert({column}, '$[#]', json(:{param}))"
