"""
Configuration and settings for the contacts service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Which persistence adapter to use. "auto" picks Supabase when its
    # credentials are present, then SQL when DATABASE_URL is set, and
    # falls back to the in-memory store.
    user_store_backend: Literal["auto", "sql", "supabase", "memory"] = Field(
        default="auto"
    )

    # SQL database (any SQLAlchemy URL; Postgres expected in production)
    database_url: Optional[str] = Field(default=None)

    # Managed Postgres (Supabase)
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    # CORS
    frontend_url: Optional[str] = Field(default=None)
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def expose_error_details(self) -> bool:
        """Backend diagnostics are attached to error responses only outside production."""
        return self.debug or self.is_development

    @property
    def allowed_origins(self) -> list[str]:
        origins = list(self.cors_origins)
        if self.is_production and self.frontend_url:
            origins.insert(0, self.frontend_url)
        return origins


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
