"""
Error taxonomy shared by the store, service and HTTP layers.
"""

from __future__ import annotations

from typing import Any, Optional


class ContactsError(Exception):
    """Base exception for the contacts service."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Any] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(ContactsError):
    """Raised when a payload fails validation. Carries every violated rule."""

    def __init__(
        self,
        errors: list[dict],
        message: str = "Validation failed",
    ):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400)
        self.errors = errors


class NotFoundError(ContactsError):
    def __init__(self, message: str = "User not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ConflictError(ContactsError):
    """Raised when a unique constraint (currently only ``email``) is violated."""

    def __init__(
        self, message: str = "Email already exists", details: Optional[Any] = None
    ):
        super().__init__(message, code="CONFLICT", status_code=400, details=details)


class InternalError(ContactsError):
    def __init__(
        self, message: str = "Internal server error", details: Optional[Any] = None
    ):
        super().__init__(message, code="INTERNAL_ERROR", status_code=500, details=details)


class StoreError(InternalError):
    """
    Unexpected persistence failure. ``details`` holds the backend diagnostic
    (message, code, hint) and is only ever exposed in development mode.
    """

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(
            "Database operation failed",
            details={"message": message, "code": code, "hint": hint},
        )
