"""
Managed Postgres (Supabase) implementation of ``UserStore``.

Talks to the ``users`` table through PostgREST via the supabase client. The
table must already exist; see ``scripts/check_store.py`` for a
connectivity check.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from contacts.db import SEARCH_COLUMNS, UNIQUE_VIOLATION, utcnow
from contacts.errors import ConflictError, StoreError

logger = logging.getLogger(__name__)


def _like_pattern(query: str) -> str:
    """
    Build a quoted ``ilike`` operand for a PostgREST ``or`` filter. LIKE
    wildcards in the query are escaped, then the value is double-quoted so
    commas and parentheses do not break the filter syntax.
    """
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    quoted = escaped.replace("\\", "\\\\").replace('"', '\\"')
    return f'"%{quoted}%"'


class SupabaseUserStore:
    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        *,
        client: Optional[Client] = None,
        table: str = "users",
    ):
        if client is None:
            if not url or not key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for SupabaseUserStore"
                )
            client = create_client(
                url,
                key,
                options=ClientOptions(
                    schema="public",
                    auto_refresh_token=False,
                    persist_session=False,
                ),
            )
            logger.info("Using Supabase user store at %s", url)
        self.client = client
        self.table_name = table

    def _table(self):
        return self.client.table(self.table_name)

    def _execute(self, query) -> list[dict]:
        try:
            response = query.execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise ConflictError() from exc
            raise StoreError(
                exc.message or str(exc), code=exc.code, hint=exc.hint
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreError(str(exc)) from exc
        return response.data or []

    def list_users(self) -> list[dict]:
        return self._execute(
            self._table()
            .select("*")
            .order("created_at", desc=True)
        )

    def get_user(self, user_id: int) -> Optional[dict]:
        rows = self._execute(self._table().select("*").eq("id", user_id).limit(1))
        return rows[0] if rows else None

    def create_user(self, values: dict) -> dict:
        now = utcnow().isoformat()
        row: dict[str, Any] = {**values, "created_at": now, "updated_at": now}
        rows = self._execute(self._table().insert(row))
        if not rows:
            raise StoreError("Insert returned no row")
        return rows[0]

    def update_user(self, user_id: int, values: dict) -> Optional[dict]:
        changes = {**values, "updated_at": utcnow().isoformat()}
        rows = self._execute(self._table().update(changes).eq("id", user_id))
        return rows[0] if rows else None

    def delete_user(self, user_id: int) -> bool:
        rows = self._execute(self._table().delete().eq("id", user_id))
        return bool(rows)

    def search_users(self, query: str) -> list[dict]:
        pattern = _like_pattern(query)
        filters = ",".join(f"{col}.ilike.{pattern}" for col in SEARCH_COLUMNS)
        return self._execute(
            self._table()
            .select("*")
            .or_(filters)
            .order("created_at", desc=True)
        )

    def ping(self) -> None:
        self._execute(self._table().select("id").limit(1))

    def close(self) -> None:
        return None
