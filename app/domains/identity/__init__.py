from app.domains.identity.entities import User
from app.domains.identity.schemas import (
    UserBase, UserCreate, UserLogin, UserUpdate, AdminFlagUpdate,
    UserResponse, Token, AuthResponse
)

__all__ = [
    "User",
    "UserBase", "UserCreate", "UserLogin", "UserUpdate", "AdminFlagUpdate",
    "UserResponse", "Token", "AuthResponse"
]
