"""
Dependency wiring for the FastAPI app.

The store is built once by ``create_app`` and kept on ``app.state``;
request handlers reach it through these dependencies.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from contacts.config import Settings
from contacts.db import InMemoryUserStore, SqlUserStore, UserStore
from contacts.service import UserService
from contacts.supabase_db import SupabaseUserStore

logger = logging.getLogger(__name__)


def resolve_backend(settings: Settings) -> str:
    backend = settings.user_store_backend
    if backend != "auto":
        return backend
    if settings.supabase_url and settings.supabase_service_role_key:
        return "supabase"
    if settings.database_url:
        return "sql"
    return "memory"


def build_user_store(settings: Settings) -> UserStore:
    """Construct the store selected by configuration."""
    backend = resolve_backend(settings)
    logger.info("Using %s user store", backend)
    if backend == "supabase":
        return SupabaseUserStore(
            settings.supabase_url, settings.supabase_service_role_key
        )
    if backend == "sql":
        return SqlUserStore(settings.database_url or "")
    return InMemoryUserStore()


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_user_service(store: UserStore = Depends(get_user_store)) -> UserService:
    return UserService(store)
