"""
Dependencies wiring the shared pool into the users routes.
"""

from __future__ import annotations

import asyncpg
from fastapi import Depends, Request

from .repository import UserRepository
from .service import UserService


def get_pool(request: Request) -> asyncpg.Pool:
    pool = getattr(request.app.state, "pool", None)
    if pool is None:
        raise RuntimeError("DB pool is not initialized. It is created in the app lifespan.")
    return pool


def get_user_repository(pool: asyncpg.Pool = Depends(get_pool)) -> UserRepository:
    return UserRepository(pool)


def get_user_service(repository: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repository)
