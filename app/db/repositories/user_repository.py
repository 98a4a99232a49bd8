from typing import Optional, List, Iterable, Set
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError
from app.db.models.user import User as UserModel
from app.db.repositories.base import BaseRepository
from app.domains.identity.entities import User


class UserRepository(BaseRepository):
    """Репозиторий для работы с пользователями"""
    
    async def create(self, user: User) -> User:
        """Создание нового пользователя"""
        db_user = UserModel(
            name=user.name,
            email=user.email,
            password_hash=user.password_hash,
            is_admin=user.is_admin,
            status=user.status,
            theme_preference=user.theme_preference,
            language_preference=user.language_preference
        )
        
        self.session.add(db_user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Email already exists")
        await self.session.refresh(db_user)
        return self._to_domain(db_user)
    
    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Получение пользователя по id"""
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.id == user_id)
            .execution_options(populate_existing=True)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None
    
    async def get_by_email(self, email: str) -> Optional[User]:
        """Получение пользователя по email"""
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.email == email)
            .execution_options(populate_existing=True)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None
    
    async def existing_ids(self, user_ids: Iterable[int]) -> Set[int]:
        """Какие из переданных id существуют"""
        ids = set(user_ids)
        if not ids:
            return set()
        result = await self.session.execute(select(UserModel.id).where(UserModel.id.in_(ids)))
        return set(result.scalars().all())
    
    async def update(self, user: User) -> User:
        """Обновление пользователя"""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user.id)
            .values(
                name=user.name,
                is_admin=user.is_admin,
                status=user.status,
                theme_preference=user.theme_preference,
                language_preference=user.language_preference,
                updated_at=user.updated_at
            )
            .execution_options(synchronize_session=False)
        )
        
        await self.session.execute(stmt)
        await self._commit()
        
        return await self.get_by_id(user.id)
    
    async def delete(self, user_id: int) -> bool:
        """Удаление пользователя"""
        stmt = (
            delete(UserModel)
            .where(UserModel.id == user_id)
        )
        result = await self.session.execute(stmt)
        await self._commit()
        return result.rowcount > 0
    
    async def get_all(self, limit: int = 100, offset: int = 0) -> List[User]:
        """Получение списка пользователей"""
        result = await self.session.execute(
            select(UserModel)
            .order_by(UserModel.id)
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        db_users = result.scalars().all()
        return [self._to_domain(user) for user in db_users]
    
    def _to_domain(self, db_user: UserModel) -> User:
        """Преобразование модели БД в доменную сущность"""
        return User(
            id=db_user.id,
            name=db_user.name,
            email=db_user.email,
            password_hash=db_user.password_hash,
            is_admin=db_user.is_admin,
            status=db_user.status,
            theme_preference=db_user.theme_preference,
            language_preference=db_user.language_preference,
            created_at=db_user.created_at,
            updated_at=db_user.updated_at
        )
