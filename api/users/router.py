"""
Users API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from core import responses

from . import schemas
from .dependencies import get_user_service
from .service import UserService

router = APIRouter(prefix="/users")


@router.get("")
async def list_users(service: UserService = Depends(get_user_service)) -> dict:
    return responses.success(await service.list_users())


@router.get("/{user_id}")
async def get_user(user_id: int, service: UserService = Depends(get_user_service)) -> dict:
    return responses.success(await service.get_user(user_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: schemas.CreateUserRequest,
    service: UserService = Depends(get_user_service),
) -> dict:
    return responses.success(await service.create_user(request))


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    request: schemas.UpdateUserRequest,
    service: UserService = Depends(get_user_service),
) -> dict:
    return responses.success(await service.update_user(user_id, request))


@router.delete("/{user_id}")
async def delete_user(user_id: int, service: UserService = Depends(get_user_service)) -> dict:
    await service.delete_user(user_id)
    return responses.message("User deleted successfully")
