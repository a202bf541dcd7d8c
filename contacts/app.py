"""
FastAPI application entry point for the contacts service.

Run with::

    uvicorn contacts.app:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contacts.config import Settings, get_settings
from contacts.db import UserStore
from contacts.dependencies import build_user_store
from contacts.errors import ContactsError
from contacts.handlers import add_exception_handlers
from contacts.logging_config import install_request_logging, setup_logging
from contacts.routes import health_router, router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: UserStore = app.state.user_store
    try:
        store.ping()
        logger.info("Connected to user store")
    except ContactsError as exc:
        logger.error("User store is unreachable: %s", exc.details or exc.message)
    yield
    store.close()


def create_app(
    settings: Optional[Settings] = None, store: Optional[UserStore] = None
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Contacts API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.user_store = store if store is not None else build_user_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    if settings.is_development:
        install_request_logging(app)
    add_exception_handlers(app)

    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(health_router)
    return app


app = create_app()
