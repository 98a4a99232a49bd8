import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class BaseRepository:
    """Общая часть репозиториев: сессия и фиксация транзакции"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def _commit(self) -> None:
        """Фиксация транзакции; при ошибке откат и StorageError"""
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Database commit failed")
            raise StorageError() from exc
    
    async def _rollback(self) -> None:
        await self.session.rollback()
