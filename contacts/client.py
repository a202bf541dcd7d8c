"""
Thin HTTP client for the contacts API.

Mirrors the operations the web frontend performs: unwraps ``data`` from the
response envelope and turns failures into ``ContactsClientError``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"


class ContactsClientError(Exception):
    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        payload: Optional[Any] = None,
    ):
        self.message = message
        self.status = status
        self.payload = payload
        super().__init__(message)


class ContactsClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        api_prefix: str = "/api",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_prefix = api_prefix.rstrip("/")
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def __enter__(self) -> "ContactsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.error("%s %s timed out", method, path)
            raise ContactsClientError("Request timed out") from exc
        except httpx.RequestError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ContactsClientError("No response received from server") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            message = (
                body.get("message") if isinstance(body, dict) else None
            ) or response.reason_phrase or "An error occurred"
            raise ContactsClientError(message, status=response.status_code, payload=body)
        return body

    def _users(self, suffix: str = "") -> str:
        return f"{self.api_prefix}/users{suffix}"

    def get_all(self) -> list[dict]:
        return self._request("GET", self._users()).get("data") or []

    def get_by_id(self, user_id: int) -> dict:
        return self._request("GET", self._users(f"/{user_id}"))["data"]

    def search(self, query: str) -> list[dict]:
        path = self._users(f"/search/{quote(query, safe='')}")
        return self._request("GET", path).get("data") or []

    def create(self, user: dict) -> dict:
        return self._request("POST", self._users(), json=user)["data"]

    def update(self, user_id: int, changes: dict) -> dict:
        return self._request("PUT", self._users(f"/{user_id}"), json=changes)["data"]

    def delete(self, user_id: int) -> dict:
        return self._request("DELETE", self._users(f"/{user_id}"))

    def health(self) -> dict:
        return self._request("GET", "/db-health")
