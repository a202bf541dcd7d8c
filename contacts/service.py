"""
Request pipelines for the ``users`` resource:
validate -> map to storage -> persist -> map to wire.
"""

from __future__ import annotations

import logging
from typing import Any

from contacts.db import UserStore
from contacts.errors import ConflictError, NotFoundError
from contacts.mapping import to_storage, to_wire
from contacts.validation import validate_create, validate_update

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store: UserStore):
        self.store = store

    def list_users(self) -> list[dict]:
        return [to_wire(record) for record in self.store.list_users()]

    def get_user(self, user_id: int) -> dict:
        record = self.store.get_user(user_id)
        if record is None:
            raise NotFoundError()
        return to_wire(record)

    def create_user(self, payload: Any) -> dict:
        values = to_storage(validate_create(payload))
        try:
            record = self.store.create_user(values)
        except ConflictError:
            logger.info("Rejected create: email %s already exists", values["email"])
            raise
        logger.info("Created user %s", record["id"])
        return to_wire(record)

    def update_user(self, user_id: int, payload: Any) -> dict:
        data = validate_update(payload)
        if self.store.get_user(user_id) is None:
            raise NotFoundError()
        values = to_storage(data, partial=True)
        try:
            record = self.store.update_user(user_id, values)
        except ConflictError:
            logger.info("Rejected update of user %s: email already exists", user_id)
            raise
        if record is None:
            # Deleted between lookup and write.
            raise NotFoundError()
        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(values)) or "no fields")
        return to_wire(record)

    def delete_user(self, user_id: int) -> None:
        if self.store.get_user(user_id) is None:
            raise NotFoundError()
        if not self.store.delete_user(user_id):
            raise NotFoundError()
        logger.info("Deleted user %s", user_id)

    def search_users(self, query: str) -> list[dict]:
        return [to_wire(record) for record in self.store.search_users(query)]

    def check_health(self) -> None:
        self.store.ping()
