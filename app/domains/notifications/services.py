import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError
from app.db.repositories.notification_repository import NotificationRepository
from app.domains.identity.entities import User
from app.domains.notifications.entities import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Запись и чтение уведомлений пользователя"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.notification_repository = NotificationRepository(session)

    async def emit(self, recipient_user_id: int, message: str) -> Optional[Notification]:
        """
        Добавление уведомления после того, как основная операция уже
        зафиксирована. Ошибка записи только логируется: вызывающая операция
        не должна из-за нее завершиться неудачей.
        """
        try:
            return await self.notification_repository.create(
                Notification(id=None, user_id=recipient_user_id, message=message)
            )
        except SQLAlchemyError:
            await self.session.rollback()
            logger.warning("Failed to store notification for user %s", recipient_user_id, exc_info=True)
            return None

    async def list_notifications(self, actor: User, unread_only: bool = False) -> List[Notification]:
        return await self.notification_repository.list_for_user(actor.id, unread_only)

    async def mark_read(self, actor: User, notification_id: int) -> Notification:
        """Отметка уведомления прочитанным, только своего"""
        notification = await self.notification_repository.get_by_id(notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.user_id != actor.id:
            raise ForbiddenError("You do not have permission to modify this notification")

        return await self.notification_repository.mark_read(notification_id)
