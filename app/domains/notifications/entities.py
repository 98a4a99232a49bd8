from datetime import datetime, timezone
from typing import Optional


class Notification:
    """Уведомление, адресованное пользователю"""
    
    def __init__(
        self,
        id: Optional[int],
        user_id: int,
        message: str,
        is_read: bool = False,
        created_at: Optional[datetime] = None
    ):
        self.id = id
        self.user_id = user_id
        self.message = message
        self.is_read = is_read
        self.created_at = created_at or datetime.now(timezone.utc)
    
    def __repr__(self) -> str:
        return f"Notification(id={self.id}, user_id={self.user_id}, is_read={self.is_read})"
