"""
Users business logic.

Validates input, calls the repository and maps its results and storage
failures onto the API errors in `core.errors`.
"""

from __future__ import annotations

import logging
from typing import Any

from core import db
from core.errors import Conflict, InternalError, InvalidInput, NotFound

from . import schemas
from .repository import UserRepository

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found"
EMAIL_EXISTS = "Email already exists"

# users.id is a SERIAL (int4) column; ids outside it cannot be bound as parameters.
MIN_USER_ID = 1
MAX_USER_ID = 2**31 - 1


def _check_user_id(user_id: int) -> None:
    # No row can exist outside the column's range.
    if not MIN_USER_ID <= user_id <= MAX_USER_ID:
        raise NotFound(USER_NOT_FOUND)


def _clean(value: str | None) -> str | None:
    # Blank strings count as "not supplied".
    value = (value or "").strip()
    return value or None


def _to_user(row: dict[str, Any]) -> dict[str, Any]:
    user = {
        "id": int(row["id"]),
        "name": str(row["name"]),
        "email": str(row["email"]),
    }
    if "created_at" in row:
        user["created_at"] = row["created_at"]
    return user


def _internal(exc: db.StorageError) -> InternalError:
    logger.error("storage_failed error=%s", exc)
    return InternalError(str(exc))


class UserService:
    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def list_users(self) -> list[dict[str, Any]]:
        try:
            rows = await self.repository.list_users()
        except db.StorageError as exc:
            raise _internal(exc) from exc
        return [_to_user(row) for row in rows]

    async def get_user(self, user_id: int) -> dict[str, Any]:
        _check_user_id(user_id)
        try:
            row = await self.repository.get_user(user_id)
        except db.StorageError as exc:
            raise _internal(exc) from exc
        if row is None:
            raise NotFound(USER_NOT_FOUND)
        return _to_user(row)

    async def create_user(self, payload: schemas.CreateUserRequest) -> dict[str, Any]:
        name = _clean(payload.name)
        email = _clean(payload.email)
        if name is None or email is None:
            raise InvalidInput("Name and email are required")

        try:
            row = await self.repository.create_user(name=name, email=email)
        except db.UniqueViolation as exc:
            if exc.violates("email"):
                logger.debug("user_create_conflict email=%s", email)
                raise Conflict(EMAIL_EXISTS) from exc
            raise _internal(exc) from exc
        except db.StorageError as exc:
            raise _internal(exc) from exc

        logger.info("user_created id=%s", row["id"])
        return _to_user(row)

    async def update_user(self, user_id: int, payload: schemas.UpdateUserRequest) -> dict[str, Any]:
        patch = schemas.UserPatch(name=_clean(payload.name), email=_clean(payload.email))
        if patch.is_empty():
            raise InvalidInput("At least one of name or email is required")
        _check_user_id(user_id)

        try:
            row = await self.repository.update_user(user_id, patch)
        except db.UniqueViolation as exc:
            if exc.violates("email"):
                logger.debug("user_update_conflict id=%s email=%s", user_id, patch.email)
                raise Conflict(EMAIL_EXISTS) from exc
            raise _internal(exc) from exc
        except db.StorageError as exc:
            raise _internal(exc) from exc

        if row is None:
            raise NotFound(USER_NOT_FOUND)
        logger.info("user_updated id=%s", user_id)
        return _to_user(row)

    async def delete_user(self, user_id: int) -> None:
        _check_user_id(user_id)
        try:
            deleted = await self.repository.delete_user(user_id)
        except db.StorageError as exc:
            raise _internal(exc) from exc
        if not deleted:
            raise NotFound(USER_NOT_FOUND)
        logger.info("user_deleted id=%s", user_id)
