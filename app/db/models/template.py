from sqlalchemy import (
    Column, String, Text, Integer, ForeignKey, Boolean, Enum, UniqueConstraint
)
from sqlalchemy.orm import relationship

from app.db.base import Base, BaseModel
from app.domains.templates.entities import QuestionType, Topic


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Template(BaseModel):
    __tablename__ = "templates"
    
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    topic = Column(Enum(Topic, name="template_topic", values_callable=_enum_values), nullable=False)
    image_url = Column(String(1024), nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    
    # Relationships
    creator = relationship("User", back_populates="templates")
    questions = relationship(
        "Question", back_populates="template", cascade="all, delete-orphan",
        order_by=lambda: [Question.order, Question.id]
    )
    tag_links = relationship("TemplateTag", back_populates="template", cascade="all, delete-orphan")
    access = relationship("TemplateAccess", back_populates="template", cascade="all, delete-orphan")
    forms = relationship("Form", back_populates="template", cascade="all, delete-orphan", order_by="Form.id")
    comments = relationship("Comment", back_populates="template", cascade="all, delete-orphan", order_by="Comment.id")
    likes = relationship("Like", back_populates="template", cascade="all, delete-orphan")


class Question(BaseModel):
    __tablename__ = "questions"
    
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(QuestionType, name="question_type", values_callable=_enum_values), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    order = Column(Integer, nullable=False, default=0)
    fixed = Column(Boolean, default=False, nullable=False)
    required = Column(Boolean, default=False, nullable=False)
    
    # Relationships
    template = relationship("Template", back_populates="questions")


class Tag(BaseModel):
    __tablename__ = "tags"
    
    name = Column(String(64), unique=True, index=True, nullable=False)
    
    # Relationships
    template_links = relationship("TemplateTag", back_populates="tag", cascade="all, delete-orphan")


class TemplateTag(Base):
    __tablename__ = "template_tags"
    
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
    
    # Relationships
    template = relationship("Template", back_populates="tag_links")
    tag = relationship("Tag", back_populates="template_links")


class TemplateAccess(Base):
    __tablename__ = "template_access"
    
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    
    # Relationships
    template = relationship("Template", back_populates="access")
    user = relationship("User")


class Comment(BaseModel):
    __tablename__ = "comments"
    
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    
    # Relationships
    template = relationship("Template", back_populates="comments")
    user = relationship("User", back_populates="comments")


class Like(BaseModel):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("template_id", "user_id", name="uq_likes_template_user"),)
    
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    
    # Relationships
    template = relationship("Template", back_populates="likes")
    user = relationship("User")
