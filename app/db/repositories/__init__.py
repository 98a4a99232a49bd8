from app.db.repositories.user_repository import UserRepository
from app.db.repositories.template_repository import (
    TemplateRepository, QuestionRepository, CommentRepository, LikeRepository, TagRepository
)
from app.db.repositories.form_repository import FormRepository
from app.db.repositories.notification_repository import NotificationRepository

__all__ = [
    "UserRepository",
    "TemplateRepository",
    "QuestionRepository",
    "CommentRepository",
    "LikeRepository",
    "TagRepository",
    "FormRepository",
    "NotificationRepository"
]
