import logging
from typing import Optional, List

from sqlalchemy import select, delete, insert, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.core.exceptions import StorageError
from app.db.models.form import Form as FormModel, Answer as AnswerModel
from app.db.models.template import Template as TemplateModel
from app.db.repositories.base import BaseRepository
from app.domains.forms.entities import Form, Answer

logger = logging.getLogger(__name__)


class FormRepository(BaseRepository):
    """Репозиторий для работы с заполненными формами"""

    async def create(self, form: Form) -> Form:
        """Создание формы вместе с ответами в одной транзакции"""
        db_form = FormModel(template_id=form.template_id, user_id=form.user_id)

        try:
            self.session.add(db_form)
            await self.session.flush()
            await self._insert_answers(db_form.id, form.answers)
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to create form for template %s", form.template_id)
            raise StorageError("Failed to save form") from exc

        await self._commit()
        return await self.get_by_id(db_form.id)

    async def get_by_id(self, form_id: int) -> Optional[Form]:
        """Получение формы с ответами, отправителем и шаблоном"""
        result = await self.session.execute(
            select(FormModel)
            .where(FormModel.id == form_id)
            .options(
                selectinload(FormModel.answers),
                selectinload(FormModel.user),
                selectinload(FormModel.template)
            )
            .execution_options(populate_existing=True)
        )
        db_form = result.scalar_one_or_none()
        return self._to_domain(db_form) if db_form else None

    async def list_for_user(
        self,
        user_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Form]:
        """Свои формы и формы по своим шаблонам; без user_id все формы"""
        stmt = select(FormModel)
        if user_id is not None:
            stmt = stmt.where(
                or_(
                    FormModel.user_id == user_id,
                    FormModel.template.has(TemplateModel.created_by == user_id)
                )
            )

        result = await self.session.execute(
            stmt
            .options(
                selectinload(FormModel.answers),
                selectinload(FormModel.user),
                selectinload(FormModel.template)
            )
            .order_by(FormModel.created_at.desc(), FormModel.id.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(f) for f in result.scalars().all()]

    async def replace_answers(self, form_id: int, answers: List[Answer]) -> Form:
        """Старые ответы удаляются, новые записываются в той же транзакции"""
        try:
            await self.session.execute(
                delete(AnswerModel)
                .where(AnswerModel.form_id == form_id)
            )
            await self._insert_answers(form_id, answers)
            await self.session.execute(
                update(FormModel)
                .where(FormModel.id == form_id)
                .values(updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to replace answers of form %s", form_id)
            raise StorageError("Failed to update form") from exc

        await self._commit()
        return await self.get_by_id(form_id)

    async def delete(self, form_id: int) -> bool:
        """Удаление формы и ее ответов"""
        try:
            await self.session.execute(
                delete(AnswerModel)
                .where(AnswerModel.form_id == form_id)
            )
            result = await self.session.execute(
                delete(FormModel)
                .where(FormModel.id == form_id)
            )
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to delete form %s", form_id)
            raise StorageError("Failed to delete form") from exc

        await self._commit()
        return result.rowcount > 0

    async def _insert_answers(self, form_id: int, answers: List[Answer]) -> None:
        if not answers:
            return
        await self.session.execute(
            insert(AnswerModel),
            [
                {"form_id": form_id, "question_id": a.question_id, "value": a.value}
                for a in answers
            ]
        )

    def _to_domain(self, db_form: FormModel) -> Form:
        """Преобразование модели БД в доменную сущность"""
        return Form(
            id=db_form.id,
            template_id=db_form.template_id,
            user_id=db_form.user_id,
            answers=[
                Answer(id=a.id, form_id=a.form_id, question_id=a.question_id, value=a.value)
                for a in db_form.answers
            ],
            user_name=db_form.user.name if db_form.user else None,
            user_email=db_form.user.email if db_form.user else None,
            template_title=db_form.template.title if db_form.template else None,
            created_at=db_form.created_at
        )
