from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"
    
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    status = Column(String(16), default="active", nullable=False)
    theme_preference = Column(String(16), default="light", nullable=False)
    language_preference = Column(String(8), default="en", nullable=False)
    
    # Relationships
    templates = relationship("Template", back_populates="creator")
    forms = relationship("Form", back_populates="user")
    comments = relationship("Comment", back_populates="user")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
