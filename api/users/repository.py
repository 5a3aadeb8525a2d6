"""
Users persistence (raw SQL).

Every method acquires one pooled connection and gives it back before
returning, error paths included.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db

from .schemas import UserPatch

# Columns an update may write, in SET-clause order.
UPDATABLE_COLUMNS = ("name", "email")


def update_assignments(existing: dict[str, Any], patch: UserPatch) -> list[tuple[str, Any]]:
    """
    Return the (column, value) pairs an update has to write.

    Only supplied fields are considered, and a field whose value already
    matches the stored row is left out.
    """
    assignments: list[tuple[str, Any]] = []
    for column in UPDATABLE_COLUMNS:
        value = getattr(patch, column)
        if value is None or existing.get(column) == value:
            continue
        assignments.append((column, value))
    return assignments


def _set_clause(assignments: list[tuple[str, Any]], *, first_placeholder: int) -> str:
    return ", ".join(
        f"{column} = ${index}"
        for index, (column, _) in enumerate(assignments, start=first_placeholder)
    )


class UserRepository:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def list_users(self) -> list[dict[str, Any]]:
        async with db.connection(self.pool) as conn:
            return await db.fetch_all(
                conn,
                """
                SELECT id, name, email, created_at
                FROM users
                ORDER BY id ASC
                """,
            )

    async def get_user(self, user_id: int) -> dict[str, Any] | None:
        async with db.connection(self.pool) as conn:
            return await db.fetch_one(
                conn,
                """
                SELECT id, name, email, created_at
                FROM users
                WHERE id = $1
                """,
                user_id,
            )

    async def create_user(self, *, name: str, email: str) -> dict[str, Any]:
        async with db.connection(self.pool) as conn:
            row = await db.fetch_one(
                conn,
                """
                INSERT INTO users (name, email)
                VALUES ($1, $2)
                RETURNING id, name, email
                """,
                name,
                email,
            )
        if row is None:
            raise db.StorageError("Failed to create user.")
        return row

    async def update_user(self, user_id: int, patch: UserPatch) -> dict[str, Any] | None:
        """
        Apply `patch` to a user and return the merged `{id, name, email}`.

        Returns None when the user does not exist, including when it is
        deleted between the existence check and the write. The two statements
        share one connection but no transaction.
        """
        async with db.connection(self.pool) as conn:
            existing = await db.fetch_one(
                conn,
                """
                SELECT id, name, email
                FROM users
                WHERE id = $1
                """,
                user_id,
            )
            if existing is None:
                return None

            assignments = update_assignments(existing, patch)
            if not assignments:
                return existing

            return await db.fetch_one(
                conn,
                f"""
                UPDATE users
                SET {_set_clause(assignments, first_placeholder=2)}
                WHERE id = $1
                RETURNING id, name, email
                """,
                user_id,
                *(value for _, value in assignments),
            )

    async def delete_user(self, user_id: int) -> bool:
        async with db.connection(self.pool) as conn:
            deleted = await db.execute(
                conn,
                """
                DELETE FROM users
                WHERE id = $1
                """,
                user_id,
            )
        return deleted > 0
