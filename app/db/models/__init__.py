from app.db.base import Base
from app.db.models.user import User
from app.db.models.template import (
    Template, Question, Tag, TemplateTag, TemplateAccess, Comment, Like
)
from app.db.models.form import Form, Answer
from app.db.models.notification import Notification

__all__ = [
    "Base",
    "User",
    "Template",
    "Question",
    "Tag",
    "TemplateTag",
    "TemplateAccess",
    "Comment",
    "Like",
    "Form",
    "Answer",
    "Notification"
]
