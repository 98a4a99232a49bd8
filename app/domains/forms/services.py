import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.db.repositories.form_repository import FormRepository
from app.db.repositories.template_repository import TemplateRepository
from app.domains.forms.entities import Form, Answer
from app.domains.forms.schemas import AnswerInput, AnswerValue
from app.domains.identity.entities import User
from app.domains.notifications.services import NotificationService
from app.domains.templates.access import TemplateAccessPolicy
from app.domains.templates.entities import Template, QuestionType

logger = logging.getLogger(__name__)


def stringify_answer(value: AnswerValue) -> str:
    """Ответы хранятся текстом: флаги как true/false, целые без дробной части"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FormService:
    """Сервис отправки и изменения заполненных форм"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.form_repository = FormRepository(session)
        self.template_repository = TemplateRepository(session)
        self.notification_service = NotificationService(session)

    async def submit_form(self, template_id: int, actor: User, answers: List[AnswerInput]) -> Form:
        """Отправка формы по шаблону"""
        template = await self.template_repository.get_by_id(template_id)
        if not template:
            raise NotFoundError("Template not found")

        TemplateAccessPolicy(template).ensure_can_submit(actor)

        form = Form(
            id=None,
            template_id=template_id,
            user_id=actor.id,
            answers=self._build_answers(template, actor, answers)
        )
        form = await self.form_repository.create(form)
        logger.info("User %s submitted form %s for template %s", actor.id, form.id, template_id)

        if template.created_by != actor.id:
            await self.notification_service.emit(
                template.created_by,
                f'{actor.name} submitted a response to "{template.title}"'
            )

        return form

    async def get_form(self, form_id: int, actor: User) -> Form:
        form, _ = await self._get_manageable(form_id, actor)
        return form

    async def list_forms(self, actor: User, limit: int = 100, offset: int = 0) -> List[Form]:
        """Свои формы и ответы на свои шаблоны; администратор видит все"""
        return await self.form_repository.list_for_user(
            user_id=None if actor.is_admin else actor.id,
            limit=limit,
            offset=offset
        )

    async def update_form(self, form_id: int, actor: User, answers: List[AnswerInput]) -> Form:
        """
        Ответы заменяются целиком. Системные ответы пересчитываются как при
        отправке, но от имени отправителя формы, а не редактора.
        """
        form, template = await self._get_manageable(form_id, actor)

        submitter_email = form.user_email
        new_answers = self._build_answers(template, None, answers, submitter_email)

        form = await self.form_repository.replace_answers(form_id, new_answers)
        logger.info("User %s updated form %s", actor.id, form_id)
        return form

    async def delete_form(self, form_id: int, actor: User) -> None:
        await self._get_manageable(form_id, actor)
        await self.form_repository.delete(form_id)
        logger.info("User %s deleted form %s", actor.id, form_id)

    async def _get_manageable(self, form_id: int, actor: User):
        form = await self.form_repository.get_by_id(form_id)
        if not form:
            raise NotFoundError("Form not found")

        template = await self.template_repository.get_by_id(form.template_id)
        if not template:
            raise NotFoundError("Template not found")

        TemplateAccessPolicy(template).ensure_can_manage_form(form, actor)
        return form, template

    @staticmethod
    def _build_answers(
        template: Template,
        actor: Optional[User],
        answers: List[AnswerInput],
        submitter_email: Optional[str] = None
    ) -> List[Answer]:
        """Проверка ответов и добавление двух системных ответов"""
        result = []
        seen = set()

        for item in answers:
            question = template.find_question(item.question_id)
            if question is None:
                raise ValidationError(f"Question {item.question_id} does not belong to this template")
            if question.fixed:
                raise ValidationError("Fixed questions are filled automatically")
            if item.question_id in seen:
                raise ValidationError(f"Question {item.question_id} is answered more than once")
            if item.value is None:
                raise ValidationError(f"Answer to question {item.question_id} has no value")

            seen.add(item.question_id)
            result.append(Answer(id=None, question_id=item.question_id, value=stringify_answer(item.value)))

        fixed_values = {
            QuestionType.FIXED_USER: submitter_email or (actor.email if actor else ""),
            QuestionType.FIXED_DATE: datetime.now(timezone.utc).isoformat(),
        }
        for question_type, value in fixed_values.items():
            question = template.fixed_question(question_type)
            if question is not None:
                result.append(Answer(id=None, question_id=question.id, value=value))

        return result
