# inventory_api/config.py
# Environment-aware configuration for the asset inventory backend

import os
from typing import Literal

# Environment detection
ENV: Literal["dev", "staging", "prod"] = os.environ.get("ENV", "dev")  # type: ignore
IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

# JWT configuration
# The fallback secret is insecure and only meant for local development.
JWT_SECRET = os.environ.get("JWT_SECRET", "your-secret-key")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_DAYS = int(os.environ.get("ACCESS_TOKEN_DAYS", "7"))

# Password hashing cost
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "10"))

# Database configuration
# Anything SQLAlchemy understands; postgres:// is normalized for SQLAlchemy 2.x
DATABASE_URL = os.environ.get("DATABASE_URL", "").strip() or "sqlite:///company_assets.db"
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + DATABASE_URL[len("postgres://"):]

IS_POSTGRES = DATABASE_URL.startswith("postgresql")
IS_SQLITE = DATABASE_URL.startswith("sqlite")

# HTTP surface
API_PREFIX = "/api"
DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100

# Manager asset visibility:
#   broad      - department match OR unassigned OR assigned to anyone
#   department - department match OR unassigned OR assigned within the department
MANAGER_VISIBILITY: Literal["broad", "department"] = os.environ.get("MANAGER_VISIBILITY", "broad")  # type: ignore
if MANAGER_VISIBILITY not in ("broad", "department"):
    MANAGER_VISIBILITY = "broad"

# CORS origins (expand for staging/prod)
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

_extra_origins = os.environ.get("CORS_ORIGINS", "")
if _extra_origins:
    CORS_ORIGINS.extend(o.strip() for o in _extra_origins.split(",") if o.strip())

print(f"[CONFIG] Environment: {ENV}")
print(f"[CONFIG] Database: {'PostgreSQL' if IS_POSTGRES else 'SQLite (local dev)' if IS_SQLITE else 'other'}")
print(f"[CONFIG] Access token: {ACCESS_TOKEN_DAYS} days")
print(f"[CONFIG] Manager visibility: {MANAGER_VISIBILITY}")

if not IS_DEV and JWT_SECRET == "your-secret-key":
    print("[CONFIG] WARNING: JWT_SECRET is not set, using the insecure development default")
