"""
inventory_api/errors.py

Error taxonomy for the inventory backend.

Services and stores raise these; main.py translates them into a JSON body
of the form {"error": ..., "details": ...} at the HTTP boundary.
"""

from __future__ import annotations

from typing import Any, Optional


class InventoryError(Exception):
    """Base class for all errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(InventoryError):
    """Missing or malformed field."""
    status_code = 400


class InvalidReferenceError(ValidationError):
    """An id that is malformed or points at a record that does not exist."""


class ConflictError(ValidationError):
    """Duplicate email, employee ID or serial number.

    Reported as 400, the same as any other validation failure.
    """


class AuthenticationError(InventoryError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class AuthorizationError(InventoryError):
    """Authenticated, but the role or department does not allow the action."""
    status_code = 403


class NotFoundError(InventoryError):
    status_code = 404


class ServerError(InventoryError):
    status_code = 500
