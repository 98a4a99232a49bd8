import logging
from typing import Optional, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
)
from app.core.security import create_access_token, verify_token
from app.db.repositories.user_repository import UserRepository
from app.domains.identity.entities import User
from app.domains.identity.schemas import UserCreate, UserUpdate, UserLogin

logger = logging.getLogger(__name__)


class IdentityService:
    """Сервис для работы с идентификацией и аутентификацией пользователей"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repository = UserRepository(session)

    async def register_user(self, user_data: UserCreate) -> Tuple[User, str]:
        """Регистрация нового пользователя, сразу выдается токен"""
        if await self.user_repository.get_by_email(user_data.email):
            raise ConflictError("Email already exists")

        user = User.create_user(
            name=user_data.name,
            email=user_data.email,
            password=user_data.password
        )
        user = await self.user_repository.create(user)
        logger.info("Registered user %s", user.id)

        return user, self.issue_token(user)

    async def login_user(self, login_data: UserLogin) -> Tuple[User, str]:
        """Вход пользователя и создание JWT токена"""
        user = await self.user_repository.get_by_email(login_data.email)

        if not user or not user.authenticate(login_data.password):
            raise UnauthenticatedError("Invalid email or password")

        if user.is_blocked:
            logger.warning("Blocked user %s tried to log in", user.id)
            raise ForbiddenError("User is blocked")

        return user, self.issue_token(user)

    @staticmethod
    def issue_token(user: User) -> str:
        token_data = {
            "sub": str(user.id),
            "email": user.email,
            "is_admin": user.is_admin
        }
        return create_access_token(data=token_data)

    async def get_user(self, user_id: int) -> User:
        """Получение пользователя по id"""
        user = await self.user_repository.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_user_profile(self, user_id: int, update_data: UserUpdate) -> User:
        """Обновление профиля пользователя"""
        user = await self.get_user(user_id)

        user.update_profile(
            name=update_data.name,
            theme_preference=update_data.theme_preference,
            language_preference=update_data.language_preference
        )

        return await self.user_repository.update(user)

    async def block_user(self, actor: User, user_id: int) -> User:
        """Блокировка пользователя администратором"""
        if actor.id == user_id:
            raise ValidationError("You cannot block yourself")

        user = await self.get_user(user_id)
        user.block()
        logger.info("Admin %s blocked user %s", actor.id, user_id)
        return await self.user_repository.update(user)

    async def unblock_user(self, actor: User, user_id: int) -> User:
        """Разблокировка пользователя"""
        user = await self.get_user(user_id)
        user.unblock()
        logger.info("Admin %s unblocked user %s", actor.id, user_id)
        return await self.user_repository.update(user)

    async def set_admin(self, actor: User, user_id: int, is_admin: bool) -> User:
        """Выдача или снятие прав администратора"""
        user = await self.get_user(user_id)
        user.set_admin(is_admin)
        logger.info("Admin %s set is_admin=%s for user %s", actor.id, is_admin, user_id)
        return await self.user_repository.update(user)

    async def delete_user(self, actor: User, user_id: int) -> None:
        """Удаление пользователя"""
        if actor.id == user_id:
            raise ValidationError("You cannot delete yourself")

        if not await self.user_repository.delete(user_id):
            raise NotFoundError("User not found")
        logger.info("Admin %s deleted user %s", actor.id, user_id)

    async def get_current_user_from_token(self, token: str) -> Optional[User]:
        """Получение текущего пользователя из JWT токена"""
        payload = verify_token(token)
        if not payload:
            return None

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            return None

        user = await self.user_repository.get_by_id(user_id)

        if user is None or user.is_blocked:
            return None

        return user

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[User]:
        """Получение списка пользователей"""
        return await self.user_repository.get_all(limit, offset)
