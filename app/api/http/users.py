from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.auth import get_current_user, get_current_admin
from app.core.db import get_db
from app.domains.identity.entities import User
from app.domains.identity.schemas import UserResponse, UserUpdate, AdminFlagUpdate
from app.domains.identity.services import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Профиль текущего пользователя"""
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
async def update_profile(
    update_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Обновление имени, темы и языка"""
    identity_service = IdentityService(db)
    user = await identity_service.update_user_profile(current_user.id, update_data)
    return UserResponse.model_validate(user)


@router.get("/", response_model=List[UserResponse])
async def get_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Получение списка пользователей"""
    identity_service = IdentityService(db)

    offset = (page - 1) * per_page
    users = await identity_service.list_users(limit=per_page, offset=offset)

    return [UserResponse.model_validate(user) for user in users]


@router.post("/{user_id}/block", response_model=UserResponse)
async def block_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    identity_service = IdentityService(db)
    user = await identity_service.block_user(admin, user_id)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/unblock", response_model=UserResponse)
async def unblock_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    identity_service = IdentityService(db)
    user = await identity_service.unblock_user(admin, user_id)
    return UserResponse.model_validate(user)


@router.put("/{user_id}/admin", response_model=UserResponse)
async def set_admin(
    user_id: int,
    data: AdminFlagUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Выдача или снятие прав администратора"""
    identity_service = IdentityService(db)
    user = await identity_service.set_admin(admin, user_id, data.is_admin)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Удаление пользователя"""
    identity_service = IdentityService(db)
    await identity_service.delete_user(admin, user_id)
