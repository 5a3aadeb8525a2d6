"""
Async database access helpers (raw SQL) using asyncpg.

The pool is created once per process by the FastAPI lifespan (see
`api/main.py`), stored on `app.state.pool` and handed to repositories through
dependencies. Nothing in this module keeps a global pool.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

import asyncpg


class StorageError(RuntimeError):
    """
    A database or connectivity failure, stripped of driver specifics.
    """


class UniqueViolation(StorageError):
    def __init__(self, message: str, *, constraint: str | None = None, column: str | None = None):
        super().__init__(message)
        self.constraint = constraint
        self.column = column

    def violates(self, column: str) -> bool:
        """
        True when this violation is on the unique constraint covering `column`.

        Postgres reports the constraint name (e.g. `users_email_key`) but
        usually not the column, so both are checked.
        """
        if self.column is not None:
            return self.column == column
        if self.constraint is None:
            return False
        return column in self.constraint.split("_")


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    """
    DATABASE_URL if set, otherwise a DSN built from the DB_* variables.
    """
    url = os.environ.get("DATABASE_URL", "").strip()
    if url:
        return _sanitize_database_url(url)

    user = quote(_env_str("DB_USER", "postgres"), safe="")
    password = quote(os.environ.get("DB_PASSWORD", ""), safe="")
    host = _env_str("DB_HOST", "localhost")
    port = env_int("DB_PORT", 5432)
    name = _env_str("DB_NAME", "users_db")
    auth = f"{user}:{password}" if password else user
    return f"postgresql://{auth}@{host}:{port}/{name}"


def pool_min_size() -> int:
    return max(0, env_int("DB_POOL_MIN_SIZE", 0))


def pool_max_size() -> int:
    return max(1, env_int("DB_POOL_MAX_SIZE", 10))


def command_timeout() -> int:
    return env_int("DB_COMMAND_TIMEOUT", 30)


async def create_pool() -> asyncpg.Pool:
    # min_size=0 keeps startup from failing when the database is not up yet.
    return await asyncpg.create_pool(
        dsn=database_url(),
        min_size=min(pool_min_size(), pool_max_size()),
        max_size=pool_max_size(),
        command_timeout=command_timeout(),
    )


async def close_pool(pool: asyncpg.Pool | None) -> None:
    if pool is None:
        return None
    await pool.close()


@asynccontextmanager
async def connection(pool: asyncpg.Pool) -> AsyncIterator[asyncpg.Connection]:
    """
    Acquire one connection for the duration of the block.

    The connection goes back to the pool on every exit path. Driver errors
    raised while acquiring or while the block runs come out as
    `StorageError` (or `UniqueViolation`); anything else passes through.
    """
    try:
        async with pool.acquire() as conn:
            yield conn
    except asyncpg.UniqueViolationError as exc:
        raise UniqueViolation(
            str(exc),
            constraint=getattr(exc, "constraint_name", None),
            column=getattr(exc, "column_name", None),
        ) from exc
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as exc:
        raise StorageError(str(exc) or type(exc).__name__) from exc


async def ping(pool: asyncpg.Pool) -> None:
    async with connection(pool) as conn:
        await conn.fetchval("SELECT 1")


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(conn: asyncpg.Connection, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(conn: asyncpg.Connection, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def execute(conn: asyncpg.Connection, sql: str, *args: Any) -> int:
    """
    Run a statement (INSERT/UPDATE/DELETE) and return the affected row count.
    """
    status = await conn.execute(sql, *args)
    return affected_rows(status)


def affected_rows(status: str) -> int:
    # asyncpg returns the command tag, e.g. "DELETE 1" or "INSERT 0 1".
    tail = (status or "").rsplit(" ", 1)[-1]
    return int(tail) if tail.isdigit() else 0
