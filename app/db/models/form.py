from sqlalchemy import Column, Text, Integer, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class Form(BaseModel):
    __tablename__ = "forms"
    
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    
    # Relationships
    template = relationship("Template", back_populates="forms")
    user = relationship("User", back_populates="forms")
    answers = relationship("Answer", back_populates="form", cascade="all, delete-orphan", order_by="Answer.id")


class Answer(BaseModel):
    __tablename__ = "answers"
    
    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    # Значение хранится текстом независимо от типа вопроса
    value = Column(Text, nullable=False, default="")
    
    # Relationships
    form = relationship("Form", back_populates="answers")
    question = relationship("Question")
