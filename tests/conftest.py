"""Pytest fixtures and test doubles for the users API tests."""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from core import db
from users.repository import update_assignments
from users.schemas import UserPatch


class InMemoryUserRepository:
    """Stands in for UserRepository, keeping rows in a dict.

    Mirrors the storage behaviour the service relies on: ids are assigned
    in insertion order and duplicate emails raise a UniqueViolation on the
    email constraint.
    """

    def __init__(self):
        self.rows: Dict[int, Dict[str, Any]] = {}
        self.next_id = 1

    def _check_email(self, email: str, *, exclude_id: Optional[int] = None) -> None:
        for row in self.rows.values():
            if row["email"] == email and row["id"] != exclude_id:
                raise db.UniqueViolation(
                    'duplicate key value violates unique constraint "users_email_key"',
                    constraint="users_email_key",
                )

    async def list_users(self) -> List[Dict[str, Any]]:
        return [dict(row) for _, row in sorted(self.rows.items())]

    async def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        row = self.rows.get(user_id)
        return dict(row) if row else None

    async def create_user(self, *, name: str, email: str) -> Dict[str, Any]:
        self._check_email(email)
        row = {
            "id": self.next_id,
            "name": name,
            "email": email,
            "created_at": datetime.now(timezone.utc),
        }
        self.rows[row["id"]] = row
        self.next_id += 1
        return {"id": row["id"], "name": name, "email": email}

    async def update_user(self, user_id: int, patch: UserPatch) -> Optional[Dict[str, Any]]:
        row = self.rows.get(user_id)
        if row is None:
            return None
        assignments = update_assignments(row, patch)
        if patch.email is not None:
            self._check_email(patch.email, exclude_id=user_id)
        for column, value in assignments:
            row[column] = value
        return {"id": row["id"], "name": row["name"], "email": row["email"]}

    async def delete_user(self, user_id: int) -> bool:
        return self.rows.pop(user_id, None) is not None


class FakeConnection:
    """Records statements and answers them from a scripted queue.

    Each queued item is either a value to return or an exception to raise.
    """

    def __init__(self, results: Optional[List[Any]] = None):
        self.results = list(results or [])
        self.calls: List[tuple] = []

    def _next(self, method: str, sql: str, args: tuple) -> Any:
        self.calls.append((method, " ".join(sql.split()), args))
        result = self.results.pop(0) if self.results else None
        if isinstance(result, BaseException):
            raise result
        return result

    async def fetch(self, sql: str, *args: Any) -> Any:
        return self._next("fetch", sql, args) or []

    async def fetchrow(self, sql: str, *args: Any) -> Any:
        return self._next("fetchrow", sql, args)

    async def fetchval(self, sql: str, *args: Any) -> Any:
        return self._next("fetchval", sql, args)

    async def execute(self, sql: str, *args: Any) -> Any:
        return self._next("execute", sql, args)


class FakePool:
    """Pool double counting acquisitions and releases of a single connection."""

    def __init__(self, connection: Optional[FakeConnection] = None, acquire_error: Optional[BaseException] = None):
        self.connection = connection or FakeConnection()
        self.acquire_error = acquire_error
        self.acquired = 0
        self.released = 0
        self.closed = False

    @asynccontextmanager
    async def _acquire(self):
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired += 1
        try:
            yield self.connection
        finally:
            self.released += 1

    def acquire(self):
        return self._acquire()

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def user_repository():
    """Fresh in-memory repository for each test."""
    return InMemoryUserRepository()


@pytest.fixture
def test_client(user_repository):
    """FastAPI test client with the repository dependency overridden.

    The lifespan is not entered, so no database pool is created.
    """
    from main import app
    from users.dependencies import get_user_repository

    app.dependency_overrides[get_user_repository] = lambda: user_repository

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def created_user(test_client):
    """A user created through the API."""
    response = test_client.post("/users", json={"name": "Test User", "email": "u1@example.com"})
    assert response.status_code == 201
    return response.json()["data"]
