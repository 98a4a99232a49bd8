from datetime import datetime, timezone
from typing import Optional

from app.core.security import get_password_hash, verify_password

USER_STATUS_ACTIVE = "active"
USER_STATUS_BLOCKED = "blocked"


class User:
    """Сущность пользователя домена Identity"""
    
    def __init__(
        self,
        id: Optional[int],
        name: str,
        email: str,
        password_hash: str,
        is_admin: bool = False,
        status: str = USER_STATUS_ACTIVE,
        theme_preference: str = "light",
        language_preference: str = "en",
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.id = id
        self.name = name
        self.email = email
        self.password_hash = password_hash
        self.is_admin = is_admin
        self.status = status
        self.theme_preference = theme_preference
        self.language_preference = language_preference
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)
    
    @property
    def is_blocked(self) -> bool:
        return self.status == USER_STATUS_BLOCKED
    
    def authenticate(self, password: str) -> bool:
        """Проверка пароля пользователя"""
        return verify_password(password, self.password_hash)
    
    def update_profile(
        self,
        name: Optional[str] = None,
        theme_preference: Optional[str] = None,
        language_preference: Optional[str] = None
    ) -> None:
        """Обновление профиля пользователя"""
        if name:
            self.name = name
        if theme_preference:
            self.theme_preference = theme_preference
        if language_preference:
            self.language_preference = language_preference
        self.updated_at = datetime.now(timezone.utc)
    
    def block(self) -> None:
        self.status = USER_STATUS_BLOCKED
        self.updated_at = datetime.now(timezone.utc)
    
    def unblock(self) -> None:
        self.status = USER_STATUS_ACTIVE
        self.updated_at = datetime.now(timezone.utc)
    
    def set_admin(self, is_admin: bool) -> None:
        self.is_admin = is_admin
        self.updated_at = datetime.now(timezone.utc)
    
    @classmethod
    def create_user(cls, name: str, email: str, password: str) -> "User":
        """Создание нового пользователя с хешированием пароля"""
        return cls(
            id=None,
            name=name,
            email=email,
            password_hash=get_password_hash(password)
        )
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, User):
            return False
        return self.id == other.id
    
    def __hash__(self) -> int:
        return hash(self.id)
    
    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, is_admin={self.is_admin})"
