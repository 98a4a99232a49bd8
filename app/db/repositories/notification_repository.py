from typing import Optional, List

from sqlalchemy import select, update

from app.db.models.notification import Notification as NotificationModel
from app.db.repositories.base import BaseRepository
from app.domains.notifications.entities import Notification


class NotificationRepository(BaseRepository):
    """Репозиторий для работы с уведомлениями"""

    async def create(self, notification: Notification) -> Notification:
        db_notification = NotificationModel(
            user_id=notification.user_id,
            message=notification.message,
            is_read=notification.is_read
        )
        self.session.add(db_notification)
        await self.session.commit()
        await self.session.refresh(db_notification)
        return self._to_domain(db_notification)

    async def get_by_id(self, notification_id: int) -> Optional[Notification]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .execution_options(populate_existing=True)
        )
        db_notification = result.scalar_one_or_none()
        return self._to_domain(db_notification) if db_notification else None

    async def list_for_user(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        """Уведомления пользователя, новые первыми"""
        stmt = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            stmt = stmt.where(NotificationModel.is_read.is_(False))

        result = await self.session.execute(
            stmt
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(n) for n in result.scalars().all()]

    async def mark_read(self, notification_id: int) -> Notification:
        await self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        await self._commit()
        return await self.get_by_id(notification_id)

    def _to_domain(self, db_notification: NotificationModel) -> Notification:
        return Notification(
            id=db_notification.id,
            user_id=db_notification.user_id,
            message=db_notification.message,
            is_read=db_notification.is_read,
            created_at=db_notification.created_at
        )
