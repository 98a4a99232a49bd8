import logging
from typing import Optional, List

import markdown
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.db.repositories.template_repository import (
    TemplateRepository, QuestionRepository, CommentRepository, LikeRepository, TagRepository
)
from app.db.repositories.user_repository import UserRepository
from app.domains.identity.entities import User
from app.domains.notifications.services import NotificationService
from app.domains.templates.access import TemplateAccessPolicy
from app.domains.templates.entities import (
    Template, Question, Comment, QuestionType, MAX_QUESTIONS_PER_TYPE
)
from app.domains.templates.schemas import (
    TemplateCreate, TemplateUpdate, QuestionCreate, QuestionUpdate, QuestionOrderItem
)

logger = logging.getLogger(__name__)


def render_description(source: str) -> str:
    """Описание шаблона хранится в markdown, наружу отдается и HTML"""
    return markdown.markdown(source or "", extensions=["extra", "sane_lists"])


class TemplateService:
    """Сервис для работы с шаблонами и их вопросами"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.template_repository = TemplateRepository(session)
        self.question_repository = QuestionRepository(session)
        self.comment_repository = CommentRepository(session)
        self.like_repository = LikeRepository(session)
        self.tag_repository = TagRepository(session)
        self.user_repository = UserRepository(session)
        self.notification_service = NotificationService(session)

    async def get_template(self, template_id: int) -> Template:
        template = await self.template_repository.get_by_id(template_id)
        if not template:
            raise NotFoundError("Template not found")
        return template

    async def get_readable_template(self, template_id: int, actor: Optional[User]) -> Template:
        """Шаблон, если пользователь может его читать"""
        template = await self.get_template(template_id)
        TemplateAccessPolicy(template).ensure_readable(actor)
        return template

    async def _get_modifiable_template(self, template_id: int, actor: User) -> Template:
        template = await self.get_template(template_id)
        TemplateAccessPolicy(template).ensure_modifiable(actor)
        return template

    async def list_templates(
        self,
        actor: Optional[User],
        tag: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Template]:
        return await self.template_repository.list_visible(
            user_id=actor.id if actor else None,
            is_admin=bool(actor and actor.is_admin),
            tag=tag,
            search=search,
            limit=limit,
            offset=offset
        )

    async def list_shared_templates(self, actor: User) -> List[Template]:
        return await self.template_repository.list_shared_with(actor.id)

    async def create_template(self, actor: User, data: TemplateCreate) -> Template:
        """Создание шаблона с вопросами из полей и двумя системными вопросами"""
        title = self._validate_title(data.title)

        for field in data.fields:
            if field.type.is_fixed:
                raise ValidationError(f"Question type '{field.type.value}' is reserved")
            if not field.label.strip():
                raise ValidationError("Question label must not be empty")

        access_user_ids = await self._validate_access_ids(data.access_user_ids, actor.id)

        template = Template(
            id=None,
            title=title,
            description=data.description,
            topic=data.topic,
            image_url=data.image_url,
            is_public=data.is_public,
            created_by=actor.id,
            questions=Template.build_questions(data.fields),
            tags=data.tags
        )

        template = await self.template_repository.create(template, access_user_ids)
        logger.info("User %s created template %s", actor.id, template.id)
        return template

    async def update_template(self, template_id: int, actor: User, data: TemplateUpdate) -> Template:
        """
        Обновление шаблона. Название и описание заменяются, тема и картинка
        остаются прежними, если не переданы. Отсутствующий флаг публичности
        сохраняется как False.
        """
        template = await self._get_modifiable_template(template_id, actor)

        template.title = self._validate_title(data.title)
        template.description = data.description
        template.topic = data.topic or template.topic
        template.image_url = data.image_url if data.image_url is not None else template.image_url
        template.is_public = bool(data.is_public)

        access_user_ids = None
        if data.access_user_ids is not None:
            access_user_ids = await self._validate_access_ids(data.access_user_ids, template.created_by)

        template = await self.template_repository.update(template, data.tags, access_user_ids)
        logger.info("User %s updated template %s", actor.id, template_id)
        return template

    async def delete_template(self, template_id: int, actor: User) -> None:
        await self._get_modifiable_template(template_id, actor)
        await self.template_repository.delete(template_id)
        logger.info("User %s deleted template %s", actor.id, template_id)

    async def duplicate_template(self, template_id: int, actor: User) -> Template:
        """Копия шаблона с вопросами и тегами; формы, доступы и лайки не копируются"""
        source = await self._get_modifiable_template(template_id, actor)

        copy = Template(
            id=None,
            title=f"{source.title} (Copy)",
            description=source.description,
            topic=source.topic,
            image_url=source.image_url,
            is_public=source.is_public,
            created_by=actor.id,
            questions=[q.copy() for q in source.ordered_questions()],
            tags=list(source.tags)
        )

        copy = await self.template_repository.create(copy)
        logger.info("User %s duplicated template %s as %s", actor.id, template_id, copy.id)
        return copy

    async def share_template(self, template_id: int, actor: User, email: str) -> Template:
        """Выдача доступа по email и уведомление получателю"""
        template = await self._get_modifiable_template(template_id, actor)

        target = await self.user_repository.get_by_email(email)
        if not target:
            raise NotFoundError("User not found")
        if target.id == template.created_by:
            raise ValidationError("Template creator already has access")

        if await self.template_repository.grant_access(template_id, target.id):
            logger.info("User %s shared template %s with user %s", actor.id, template_id, target.id)

        await self.notification_service.emit(
            target.id,
            f'{actor.name} shared the template "{template.title}" with you'
        )
        return await self.get_template(template_id)

    async def add_question(self, template_id: int, actor: User, data: QuestionCreate) -> Question:
        template = await self._get_modifiable_template(template_id, actor)

        if data.type.is_fixed:
            raise ValidationError(f"Question type '{data.type.value}' is reserved")
        title = data.title.strip()
        if not title:
            raise ValidationError("Question title must not be empty")
        self._check_type_limit(template, data.type)

        order = data.order
        if order is None:
            orders = [q.order for q in template.questions if not q.fixed]
            order = max(orders) + 1 if orders else 0

        question = Question(
            id=None,
            template_id=template_id,
            type=data.type,
            title=title,
            description=data.description,
            order=order,
            required=data.required
        )
        question = await self.question_repository.create(template_id, question)
        logger.info("User %s added question %s to template %s", actor.id, question.id, template_id)
        return question

    async def update_question(
        self,
        template_id: int,
        question_id: int,
        actor: User,
        data: QuestionUpdate
    ) -> Question:
        template = await self._get_modifiable_template(template_id, actor)
        question = self._find_question(template, question_id)

        if question.fixed:
            raise ValidationError("Fixed questions cannot be edited")

        if data.type is not None and data.type != question.type:
            if data.type.is_fixed:
                raise ValidationError(f"Question type '{data.type.value}' is reserved")
            self._check_type_limit(template, data.type, exclude_id=question.id)
            question.type = data.type

        if data.title is not None:
            if not data.title.strip():
                raise ValidationError("Question title must not be empty")
            question.title = data.title.strip()
        if data.description is not None:
            question.description = data.description
        if data.required is not None:
            question.required = data.required

        return await self.question_repository.update(question)

    async def delete_question(self, template_id: int, question_id: int, actor: User) -> None:
        template = await self._get_modifiable_template(template_id, actor)
        question = self._find_question(template, question_id)

        if question.fixed:
            raise ValidationError("Fixed questions cannot be deleted")

        await self.question_repository.delete(question_id)
        logger.info("User %s deleted question %s of template %s", actor.id, question_id, template_id)

    async def reorder_questions(
        self,
        template_id: int,
        actor: User,
        items: List[QuestionOrderItem]
    ) -> Template:
        """Новый порядок применяется целиком или не применяется вовсе"""
        template = await self._get_modifiable_template(template_id, actor)

        orders = {}
        for item in items:
            question = template.find_question(item.id)
            if question is None:
                raise ValidationError(f"Question {item.id} does not belong to this template")
            if question.fixed:
                raise ValidationError("Fixed questions cannot be reordered")
            if item.id in orders:
                raise ValidationError(f"Question {item.id} is listed more than once")
            orders[item.id] = item.order

        await self.question_repository.reorder(template_id, orders)
        return await self.get_template(template_id)

    async def list_comments(self, template_id: int, actor: Optional[User]) -> List[Comment]:
        template = await self.get_readable_template(template_id, actor)
        return template.comments

    async def add_comment(self, template_id: int, actor: User, content: str) -> Comment:
        template = await self.get_template(template_id)
        TemplateAccessPolicy(template).ensure_participant(actor, "comment on")

        content = content.strip()
        if not content:
            raise ValidationError("Comment must not be empty")

        return await self.comment_repository.create(template_id, actor.id, content)

    async def update_comment(self, template_id: int, comment_id: int, actor: User, content: str) -> Comment:
        comment = await self._get_comment(template_id, comment_id)
        if comment.user_id != actor.id:
            raise ForbiddenError("Only the author can edit a comment")

        content = content.strip()
        if not content:
            raise ValidationError("Comment must not be empty")

        return await self.comment_repository.update(comment_id, content)

    async def delete_comment(self, template_id: int, comment_id: int, actor: User) -> None:
        comment = await self._get_comment(template_id, comment_id)
        if comment.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Only the author can delete a comment")

        await self.comment_repository.delete(comment_id)

    async def like_template(self, template_id: int, actor: User) -> int:
        """Лайк; возвращается новое количество лайков"""
        template = await self.get_template(template_id)
        TemplateAccessPolicy(template).ensure_participant(actor, "like")

        if await self.like_repository.exists(template_id, actor.id):
            raise ConflictError("Already liked")

        await self.like_repository.create(template_id, actor.id)
        return await self.like_repository.count(template_id)

    async def unlike_template(self, template_id: int, actor: User) -> int:
        await self.get_template(template_id)

        if not await self.like_repository.delete(template_id, actor.id):
            raise NotFoundError("Like not found")
        return await self.like_repository.count(template_id)

    async def list_tags(self, actor: Optional[User]):
        return await self.tag_repository.list_visible(
            user_id=actor.id if actor else None,
            is_admin=bool(actor and actor.is_admin)
        )

    async def _get_comment(self, template_id: int, comment_id: int) -> Comment:
        comment = await self.comment_repository.get_by_id(comment_id)
        if not comment or comment.template_id != template_id:
            raise NotFoundError("Comment not found")
        return comment

    async def _validate_access_ids(self, user_ids: List[int], creator_id: int) -> List[int]:
        """Существующие пользователи без создателя шаблона"""
        user_ids = [uid for uid in dict.fromkeys(user_ids) if uid != creator_id]
        missing = set(user_ids) - await self.user_repository.existing_ids(user_ids)
        if missing:
            raise ValidationError(
                "Unknown users in access list",
                details={"user_ids": sorted(missing)}
            )
        return user_ids

    @staticmethod
    def _validate_title(title: str) -> str:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title must not be empty")
        return title

    @staticmethod
    def _find_question(template: Template, question_id: int) -> Question:
        question = template.find_question(question_id)
        if question is None:
            raise NotFoundError("Question not found")
        return question

    @staticmethod
    def _check_type_limit(
        template: Template,
        question_type: QuestionType,
        exclude_id: Optional[int] = None
    ) -> None:
        if template.count_questions_of_type(question_type, exclude_id) >= MAX_QUESTIONS_PER_TYPE:
            raise ValidationError(
                f"A template can have at most {MAX_QUESTIONS_PER_TYPE} questions of type '{question_type.value}'"
            )
