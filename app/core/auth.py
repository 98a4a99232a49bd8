from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.exceptions import ForbiddenError, UnauthenticatedError
from app.domains.identity.entities import User
from app.domains.identity.services import IdentityService

security = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Пользователь из токена или None для анонимного запроса"""
    if credentials is None:
        return None

    identity_service = IdentityService(db)
    user = await identity_service.get_current_user_from_token(credentials.credentials)
    if user is None:
        raise UnauthenticatedError("Could not validate credentials")
    return user


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Зависимость для получения текущего пользователя"""
    if user is None:
        raise UnauthenticatedError()
    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Только для администраторов"""
    if not user.is_admin:
        raise ForbiddenError("Administrator privileges required")
    return user
