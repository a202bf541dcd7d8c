"""
HTTP routes for the contacts API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from contacts.config import Settings
from contacts.dependencies import get_settings_dep, get_user_service
from contacts.errors import ContactsError
from contacts.schemas import (
    AckEnvelope,
    DbHealthResponse,
    HealthResponse,
    UserEnvelope,
    UserListEnvelope,
)
from contacts.service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])
health_router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("", response_model=UserListEnvelope, response_model_exclude_unset=True)
def list_users(service: UserService = Depends(get_user_service)):
    return UserListEnvelope(success=True, data=service.list_users())


@router.get(
    "/search/{query}",
    response_model=UserListEnvelope,
    response_model_exclude_unset=True,
)
def search_users(query: str, service: UserService = Depends(get_user_service)):
    return UserListEnvelope(success=True, data=service.search_users(query))


@router.get(
    "/{user_id}", response_model=UserEnvelope, response_model_exclude_unset=True
)
def get_user(user_id: int, service: UserService = Depends(get_user_service)):
    return UserEnvelope(success=True, data=service.get_user(user_id))


@router.post(
    "",
    response_model=UserEnvelope,
    response_model_exclude_unset=True,
    status_code=201,
)
def create_user(
    payload: Any = Body(default=None),
    service: UserService = Depends(get_user_service),
):
    """
    Accepts address data flat (``street``, ``geo_lat``...) or nested under
    ``address``. Duplicate emails are rejected with 400.
    """
    user = service.create_user(payload)
    return UserEnvelope(success=True, message="User created successfully", data=user)


@router.put(
    "/{user_id}", response_model=UserEnvelope, response_model_exclude_unset=True
)
def update_user(
    user_id: int,
    payload: Any = Body(default=None),
    service: UserService = Depends(get_user_service),
):
    """Partial update: omitted fields keep their value, explicit nulls clear it."""
    user = service.update_user(user_id, payload)
    return UserEnvelope(success=True, message="User updated successfully", data=user)


@router.delete("/{user_id}", response_model=AckEnvelope)
def delete_user(user_id: int, service: UserService = Depends(get_user_service)):
    service.delete_user(user_id)
    return AckEnvelope(success=True, message="User deleted successfully")


@health_router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok", timestamp=_now())


@health_router.get(
    "/db-health", response_model=DbHealthResponse, response_model_exclude_none=True
)
def db_health(
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings_dep),
):
    try:
        service.check_health()
    except ContactsError as exc:
        logger.error("Database health check failed: %s", exc.details or exc.message)
        body = DbHealthResponse(status="error", message="Database connection failed")
        if settings.expose_error_details:
            body.error = (exc.details or {}).get("message") or exc.message
        return JSONResponse(
            status_code=500, content=body.model_dump(exclude_none=True)
        )
    return DbHealthResponse(
        status="success",
        message="Database connection is healthy",
        timestamp=_now(),
    )
