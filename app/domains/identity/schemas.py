from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime

THEMES = ("light", "dark")


class UserBase(BaseModel):
    """Базовая схема пользователя"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name must not be empty')
        return v.strip()


class UserCreate(UserBase):
    """Схема для регистрации пользователя"""
    password: str = Field(..., min_length=6, max_length=128)


class UserLogin(BaseModel):
    """Схема для входа пользователя"""
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    """Схема для обновления профиля"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    theme_preference: Optional[str] = None
    language_preference: Optional[str] = Field(None, min_length=2, max_length=8)

    @field_validator('theme_preference')
    @classmethod
    def validate_theme(cls, v):
        if v is not None and v not in THEMES:
            raise ValueError('Theme must be either light or dark')
        return v


class AdminFlagUpdate(BaseModel):
    """Схема для выдачи или снятия прав администратора"""
    is_admin: bool


class UserResponse(BaseModel):
    """Схема для ответа с данными пользователя"""
    id: int
    name: str
    email: str
    is_admin: bool
    status: str
    theme_preference: str
    language_preference: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Схема для JWT токена"""
    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    """Токен вместе с данными пользователя"""
    user: UserResponse
