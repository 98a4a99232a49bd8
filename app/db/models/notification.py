from sqlalchemy import Column, Text, Integer, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class Notification(BaseModel):
    __tablename__ = "notifications"
    
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    
    # Relationships
    user = relationship("User", back_populates="notifications")
