# ---------------------------------------------------------
# inventory_api/main.py
# Company Asset Inventory - REST backend
#
# Run: uvicorn inventory_api.main:app --reload --port 4000 (from repo root)
#
# - FastAPI + SQLAlchemy (SQLite or PostgreSQL)
# - /api/auth   : register, login, profile, change password
# - /api/assets : CRUD, maintenance, assign/return, history, stats
# - /api/users  : directory, team, admin management
# ---------------------------------------------------------

from __future__ import annotations

from typing import Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException

from inventory_api.config import CORS_ORIGINS, IS_DEV, IS_PROD
from inventory_api.db import init_db
from inventory_api.errors import ConflictError, InventoryError, ServerError
from inventory_api.routes_assets import router as assets_router
from inventory_api.routes_auth import router as auth_router
from inventory_api.routes_users import router as users_router


# ---------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------
app = FastAPI(title="Company Asset Inventory", version="1.0.0")

# CORS configuration from config module
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if IS_PROD else ["*"],  # Restrict origins in production
    allow_credentials=IS_PROD,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()


# ---------------------------------------------------------
# Error translation: every failure leaves as {"error", "details"?}
# ---------------------------------------------------------
@app.exception_handler(InventoryError)
def handle_inventory_error(request: Request, exc: InventoryError) -> JSONResponse:
    if IS_DEV:
        print(f"[API] {request.method} {request.url.path} -> {exc.status_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_body()))


@app.exception_handler(HTTPException)
def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(IntegrityError)
def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    # A uniqueness race that slipped past the pre-checks
    if IS_DEV:
        print(f"[DB] Integrity error on {request.method} {request.url.path}: {exc.orig}")
    error = ConflictError("Record conflicts with an existing one")
    return JSONResponse(status_code=error.status_code, content=error.to_body())


@app.exception_handler(SQLAlchemyError)
def handle_db_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Log error but don't expose internal details
    print(f"[DB] Error on {request.method} {request.url.path}: {type(exc).__name__}")
    error = ServerError("Database error")
    return JSONResponse(status_code=error.status_code, content=error.to_body())


# ---------------------------------------------------------
# Routes
# ---------------------------------------------------------
@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(assets_router)
app.include_router(users_router)
