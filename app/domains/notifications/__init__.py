from app.domains.notifications.entities import Notification
from app.domains.notifications.schemas import NotificationResponse

__all__ = ["Notification", "NotificationResponse"]
