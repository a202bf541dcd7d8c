"""
Persistence adapters for the ``users`` table: a SQLAlchemy implementation
(Postgres in production, SQLite locally) and an in-memory one for
development and tests.

Records cross this boundary as plain dicts in storage shape (flat address
columns).
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    create_engine,
    or_,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from contacts.errors import ConflictError, StoreError
from contacts.mapping import STORAGE_COLUMNS

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = ("name", "email", "phone", "company")
UNIQUE_VIOLATION = "23505"


class UserStore(Protocol):
    """Interface for user persistence."""

    def list_users(self) -> list[dict]:
        ...

    def get_user(self, user_id: int) -> Optional[dict]:
        ...

    def create_user(self, values: dict) -> dict:
        ...

    def update_user(self, user_id: int, values: dict) -> Optional[dict]:
        ...

    def delete_user(self, user_id: int) -> bool:
        ...

    def search_users(self, query: str) -> list[dict]:
        ...

    def ping(self) -> None:
        ...

    def close(self) -> None:
        ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(records: list[dict]) -> list[dict]:
    return sorted(
        records, key=lambda r: (r["created_at"], r["id"]), reverse=True
    )


class InMemoryUserStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.users: dict[int, dict] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.clear()
            self._next_id = 1

    def _email_taken(self, email: Optional[str], exclude_id: Optional[int] = None) -> bool:
        return any(
            user["email"] == email
            for user_id, user in self.users.items()
            if user_id != exclude_id
        )

    def list_users(self) -> list[dict]:
        with self._lock:
            return [dict(user) for user in _newest_first(list(self.users.values()))]

    def get_user(self, user_id: int) -> Optional[dict]:
        with self._lock:
            user = self.users.get(user_id)
            return dict(user) if user else None

    def create_user(self, values: dict) -> dict:
        with self._lock:
            if self._email_taken(values.get("email")):
                raise ConflictError()
            now = utcnow()
            record = {column: values.get(column) for column in STORAGE_COLUMNS}
            record.update(id=self._next_id, created_at=now, updated_at=now)
            self.users[self._next_id] = record
            self._next_id += 1
            return dict(record)

    def update_user(self, user_id: int, values: dict) -> Optional[dict]:
        with self._lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            if "email" in values and self._email_taken(values["email"], user_id):
                raise ConflictError()
            user.update(values)
            user["updated_at"] = utcnow()
            return dict(user)

    def delete_user(self, user_id: int) -> bool:
        with self._lock:
            return self.users.pop(user_id, None) is not None

    def search_users(self, query: str) -> list[dict]:
        needle = query.lower()
        with self._lock:
            matches = [
                user
                for user in self.users.values()
                if any(needle in (user.get(col) or "").lower() for col in SEARCH_COLUMNS)
            ]
            return [dict(user) for user in _newest_first(matches)]

    def ping(self) -> None:
        return None

    def close(self) -> None:
        return None


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    # psycopg exposes ``sqlstate``, psycopg2 ``pgcode``
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _is_unique_violation(exc: IntegrityError) -> bool:
    code = _sqlstate(exc)
    if code:
        return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(exc.orig)


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Map driver errors onto the service error taxonomy."""
    try:
        yield
    except IntegrityError as exc:
        if _is_unique_violation(exc):
            raise ConflictError() from exc
        raise StoreError(str(exc.orig), code=_sqlstate(exc)) from exc
    except SQLAlchemyError as exc:
        raise StoreError(str(exc), code=_sqlstate(exc)) from exc


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlUserStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlUserStore")
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection so every thread sees the same database.
            engine_kwargs = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        else:
            engine_kwargs = {"pool_pre_ping": True, "pool_recycle": 1800}
        self.engine = create_engine(database_url, future=True, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_record(self, row: "UserRow") -> dict:
        return {
            column.name: getattr(row, column.name)
            for column in UserRow.__table__.columns
        }

    def list_users(self) -> list[dict]:
        with _translate_errors(), self.Session() as session:
            stmt = select(UserRow).order_by(
                UserRow.created_at.desc(), UserRow.id.desc()
            )
            return [self._to_record(row) for row in session.scalars(stmt)]

    def get_user(self, user_id: int) -> Optional[dict]:
        with _translate_errors(), self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            return self._to_record(row)

    def create_user(self, values: dict) -> dict:
        now = utcnow()
        with _translate_errors(), self.Session() as session:
            row = UserRow(**values, created_at=now, updated_at=now)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def update_user(self, user_id: int, values: dict) -> Optional[dict]:
        with _translate_errors(), self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            for column, value in values.items():
                setattr(row, column, value)
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def delete_user(self, user_id: int) -> bool:
        with _translate_errors(), self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def search_users(self, query: str) -> list[dict]:
        pattern = f"%{_escape_like(query)}%"
        with _translate_errors(), self.Session() as session:
            stmt = (
                select(UserRow)
                .where(
                    or_(
                        *(
                            getattr(UserRow, col).ilike(pattern, escape="\\")
                            for col in SEARCH_COLUMNS
                        )
                    )
                )
                .order_by(UserRow.created_at.desc(), UserRow.id.desc())
            )
            return [self._to_record(row) for row in session.scalars(stmt)]

    def ping(self) -> None:
        with _translate_errors(), self.Session() as session:
            session.execute(select(UserRow.id).limit(1))

    def close(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    street = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    zip = Column(String(255), nullable=True)
    geo_lat = Column(String(255), nullable=True)
    geo_lng = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
