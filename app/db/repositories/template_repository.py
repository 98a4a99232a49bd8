import logging
from typing import Optional, List, Dict, Iterable

from sqlalchemy import select, update, delete, insert, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, StorageError
from app.db.models.form import Form as FormModel, Answer as AnswerModel
from app.db.models.template import (
    Template as TemplateModel,
    Question as QuestionModel,
    Tag as TagModel,
    TemplateTag as TemplateTagModel,
    TemplateAccess as TemplateAccessModel,
    Comment as CommentModel,
    Like as LikeModel,
)
from app.db.repositories.base import BaseRepository
from app.domains.forms.entities import Form, Answer
from app.domains.templates.entities import Template, Question, AccessGrant, Comment

logger = logging.getLogger(__name__)


def _aggregate_options():
    """Все связи, которые нужны для сборки агрегата шаблона"""
    return (
        selectinload(TemplateModel.creator),
        selectinload(TemplateModel.questions),
        selectinload(TemplateModel.tag_links).selectinload(TemplateTagModel.tag),
        selectinload(TemplateModel.access).selectinload(TemplateAccessModel.user),
        selectinload(TemplateModel.forms).selectinload(FormModel.answers),
        selectinload(TemplateModel.forms).selectinload(FormModel.user),
        selectinload(TemplateModel.comments).selectinload(CommentModel.user),
        selectinload(TemplateModel.likes),
    )


def _clean_tag_names(names: Iterable[str]) -> List[str]:
    """Убираем пустые и повторяющиеся имена, сохраняя порядок"""
    seen = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


class TemplateRepository(BaseRepository):
    """Репозиторий для работы с шаблонами"""

    async def create(self, template: Template, access_user_ids: Iterable[int] = ()) -> Template:
        """Создание шаблона вместе с вопросами, тегами и доступами"""
        db_template = TemplateModel(
            title=template.title,
            description=template.description,
            topic=template.topic,
            image_url=template.image_url,
            is_public=template.is_public,
            created_by=template.created_by,
            questions=[self._question_to_model(q) for q in template.questions]
        )

        try:
            self.session.add(db_template)
            await self.session.flush()

            tags = await self._get_or_create_tags(template.tags)
            await self._link_tags(db_template.id, tags)
            await self._grant_many(db_template.id, access_user_ids)
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to create template")
            raise StorageError("Failed to create template") from exc

        await self._commit()
        return await self.get_by_id(db_template.id)

    async def get_by_id(self, template_id: int) -> Optional[Template]:
        """Получение агрегата шаблона по id"""
        result = await self.session.execute(
            select(TemplateModel)
            .where(TemplateModel.id == template_id)
            .options(*_aggregate_options())
            .execution_options(populate_existing=True)
        )
        db_template = result.scalar_one_or_none()
        return self._to_domain(db_template) if db_template else None

    async def list_visible(
        self,
        user_id: Optional[int] = None,
        is_admin: bool = False,
        tag: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Template]:
        """Шаблоны, видимые пользователю: публичные, свои и выданные"""
        stmt = select(TemplateModel)

        if user_id is None:
            stmt = stmt.where(TemplateModel.is_public.is_(True))
        elif not is_admin:
            stmt = stmt.where(
                or_(
                    TemplateModel.is_public.is_(True),
                    TemplateModel.created_by == user_id,
                    TemplateModel.access.any(TemplateAccessModel.user_id == user_id)
                )
            )

        if tag:
            stmt = stmt.where(
                TemplateModel.tag_links.any(TemplateTagModel.tag.has(TagModel.name == tag))
            )

        if search:
            stmt = stmt.where(
                or_(
                    TemplateModel.title.ilike(f"%{search}%"),
                    TemplateModel.description.ilike(f"%{search}%")
                )
            )

        result = await self.session.execute(
            stmt
            .options(*_aggregate_options())
            .order_by(TemplateModel.created_at.desc(), TemplateModel.id.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(t) for t in result.scalars().all()]

    async def list_shared_with(self, user_id: int) -> List[Template]:
        """Шаблоны, к которым пользователю выдан доступ (кроме собственных)"""
        result = await self.session.execute(
            select(TemplateModel)
            .where(
                TemplateModel.access.any(TemplateAccessModel.user_id == user_id),
                TemplateModel.created_by != user_id
            )
            .options(*_aggregate_options())
            .order_by(TemplateModel.created_at.desc(), TemplateModel.id.desc())
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(t) for t in result.scalars().all()]

    async def update(
        self,
        template: Template,
        tags: Optional[List[str]] = None,
        access_user_ids: Optional[List[int]] = None
    ) -> Template:
        """Обновление полей шаблона; теги и доступы заменяются целиком в той же транзакции"""
        try:
            await self.session.execute(
                update(TemplateModel)
                .where(TemplateModel.id == template.id)
                .values(
                    title=template.title,
                    description=template.description,
                    topic=template.topic,
                    image_url=template.image_url,
                    is_public=template.is_public,
                    updated_at=func.now()
                )
                .execution_options(synchronize_session=False)
            )

            if tags is not None:
                await self.session.execute(
                    delete(TemplateTagModel)
                    .where(TemplateTagModel.template_id == template.id)
                )
                new_tags = await self._get_or_create_tags(tags)
                await self._link_tags(template.id, new_tags)

            if access_user_ids is not None:
                await self.session.execute(
                    delete(TemplateAccessModel)
                    .where(TemplateAccessModel.template_id == template.id)
                )
                await self._grant_many(template.id, access_user_ids)
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to update template %s", template.id)
            raise StorageError("Failed to update template") from exc

        await self._commit()
        return await self.get_by_id(template.id)

    async def delete(self, template_id: int) -> bool:
        """Удаление шаблона со всеми зависимыми строками"""
        form_ids = select(FormModel.id).where(FormModel.template_id == template_id)
        statements = [
            delete(AnswerModel).where(AnswerModel.form_id.in_(form_ids)),
            delete(FormModel).where(FormModel.template_id == template_id),
            delete(CommentModel).where(CommentModel.template_id == template_id),
            delete(LikeModel).where(LikeModel.template_id == template_id),
            delete(TemplateAccessModel).where(TemplateAccessModel.template_id == template_id),
            delete(TemplateTagModel).where(TemplateTagModel.template_id == template_id),
            delete(QuestionModel).where(QuestionModel.template_id == template_id),
        ]

        try:
            for stmt in statements:
                await self.session.execute(stmt)
            result = await self.session.execute(
                delete(TemplateModel)
                .where(TemplateModel.id == template_id)
            )
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to delete template %s", template_id)
            raise StorageError("Failed to delete template") from exc

        await self._commit()
        return result.rowcount > 0

    async def grant_access(self, template_id: int, user_id: int) -> bool:
        """Выдача доступа; False, если доступ уже был"""
        if await self.has_access(template_id, user_id):
            return False

        try:
            await self._grant_many(template_id, [user_id])
            await self.session.commit()
        except IntegrityError:
            # тот же доступ успел выдать параллельный запрос
            await self._rollback()
            return False
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to grant access to template %s", template_id)
            raise StorageError("Failed to grant access") from exc
        return True

    async def has_access(self, template_id: int, user_id: int) -> bool:
        result = await self.session.execute(
            select(TemplateAccessModel.user_id).where(
                TemplateAccessModel.template_id == template_id,
                TemplateAccessModel.user_id == user_id
            )
        )
        return result.first() is not None

    async def _get_or_create_tags(self, names: Iterable[str]) -> List[TagModel]:
        names = _clean_tag_names(names)
        if not names:
            return []

        result = await self.session.execute(select(TagModel).where(TagModel.name.in_(names)))
        existing = {tag.name: tag for tag in result.scalars().all()}

        for name in names:
            if name not in existing:
                tag = TagModel(name=name)
                self.session.add(tag)
                existing[name] = tag
        await self.session.flush()

        return [existing[name] for name in names]

    async def _link_tags(self, template_id: int, tags: List[TagModel]) -> None:
        if not tags:
            return
        await self.session.execute(
            insert(TemplateTagModel),
            [{"template_id": template_id, "tag_id": tag.id} for tag in tags]
        )

    async def _grant_many(self, template_id: int, user_ids: Iterable[int]) -> None:
        user_ids = list(dict.fromkeys(user_ids))
        if not user_ids:
            return
        await self.session.execute(
            insert(TemplateAccessModel),
            [{"template_id": template_id, "user_id": user_id} for user_id in user_ids]
        )

    @staticmethod
    def _question_to_model(question: Question) -> QuestionModel:
        return QuestionModel(
            type=question.type,
            title=question.title,
            description=question.description,
            order=question.order,
            fixed=question.fixed,
            required=question.required
        )

    def _to_domain(self, db_template: TemplateModel) -> Template:
        """Преобразование модели БД в доменную сущность"""
        return Template(
            id=db_template.id,
            title=db_template.title,
            description=db_template.description or "",
            topic=db_template.topic,
            image_url=db_template.image_url,
            is_public=db_template.is_public,
            created_by=db_template.created_by,
            creator_name=db_template.creator.name if db_template.creator else None,
            questions=[QuestionRepository.to_domain(q) for q in db_template.questions],
            tags=[link.tag.name for link in db_template.tag_links],
            access=[
                AccessGrant(
                    user_id=grant.user_id,
                    email=grant.user.email if grant.user else None,
                    name=grant.user.name if grant.user else None
                )
                for grant in db_template.access
            ],
            forms=[self._form_to_domain(form, db_template) for form in db_template.forms],
            comments=[CommentRepository.to_domain(c) for c in db_template.comments],
            likes=[like.user_id for like in db_template.likes],
            created_at=db_template.created_at,
            updated_at=db_template.updated_at
        )

    @staticmethod
    def _form_to_domain(db_form: FormModel, db_template: TemplateModel) -> Form:
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
            template_title=db_template.title,
            created_at=db_form.created_at
        )


class QuestionRepository(BaseRepository):
    """Репозиторий для работы с вопросами шаблона"""

    async def create(self, template_id: int, question: Question) -> Question:
        """Добавление вопроса в шаблон"""
        db_question = TemplateRepository._question_to_model(question)
        db_question.template_id = template_id

        self.session.add(db_question)
        await self._commit()
        await self.session.refresh(db_question)
        return self.to_domain(db_question)

    async def update(self, question: Question) -> Question:
        """Обновление вопроса"""
        await self.session.execute(
            update(QuestionModel)
            .where(QuestionModel.id == question.id)
            .values(
                title=question.title,
                type=question.type,
                description=question.description,
                required=question.required,
                updated_at=func.now()
            )
            .execution_options(synchronize_session=False)
        )
        await self._commit()

        result = await self.session.execute(
            select(QuestionModel)
            .where(QuestionModel.id == question.id)
            .execution_options(populate_existing=True)
        )
        return self.to_domain(result.scalar_one())

    async def delete(self, question_id: int) -> bool:
        """Удаление вопроса вместе с ответами на него"""
        try:
            await self.session.execute(
                delete(AnswerModel)
                .where(AnswerModel.question_id == question_id)
            )
            result = await self.session.execute(
                delete(QuestionModel)
                .where(QuestionModel.id == question_id)
            )
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to delete question %s", question_id)
            raise StorageError("Failed to delete question") from exc

        await self._commit()
        return result.rowcount > 0

    async def reorder(self, template_id: int, orders: Dict[int, int]) -> None:
        """Новый порядок вопросов применяется целиком в одной транзакции"""
        try:
            for question_id, order in orders.items():
                await self.session.execute(
                    update(QuestionModel)
                    .where(
                        QuestionModel.id == question_id,
                        QuestionModel.template_id == template_id
                    )
                    .values(order=order)
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Failed to reorder questions of template %s", template_id)
            raise StorageError("Failed to reorder questions") from exc

        await self._commit()

    @staticmethod
    def to_domain(db_question: QuestionModel) -> Question:
        return Question(
            id=db_question.id,
            template_id=db_question.template_id,
            type=db_question.type,
            title=db_question.title,
            description=db_question.description or "",
            order=db_question.order,
            fixed=db_question.fixed,
            required=db_question.required
        )


class CommentRepository(BaseRepository):
    """Репозиторий для работы с комментариями"""

    async def create(self, template_id: int, user_id: int, content: str) -> Comment:
        db_comment = CommentModel(template_id=template_id, user_id=user_id, content=content)
        self.session.add(db_comment)
        await self._commit()
        return await self.get_by_id(db_comment.id)

    async def get_by_id(self, comment_id: int) -> Optional[Comment]:
        result = await self.session.execute(
            select(CommentModel)
            .where(CommentModel.id == comment_id)
            .options(selectinload(CommentModel.user))
            .execution_options(populate_existing=True)
        )
        db_comment = result.scalar_one_or_none()
        return self.to_domain(db_comment) if db_comment else None

    async def update(self, comment_id: int, content: str) -> Comment:
        await self.session.execute(
            update(CommentModel)
            .where(CommentModel.id == comment_id)
            .values(content=content, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        await self._commit()
        return await self.get_by_id(comment_id)

    async def delete(self, comment_id: int) -> bool:
        result = await self.session.execute(
            delete(CommentModel)
            .where(CommentModel.id == comment_id)
        )
        await self._commit()
        return result.rowcount > 0

    @staticmethod
    def to_domain(db_comment: CommentModel) -> Comment:
        return Comment(
            id=db_comment.id,
            template_id=db_comment.template_id,
            user_id=db_comment.user_id,
            content=db_comment.content,
            user_name=db_comment.user.name if db_comment.user else None,
            created_at=db_comment.created_at
        )


class LikeRepository(BaseRepository):
    """Репозиторий для работы с лайками"""

    async def exists(self, template_id: int, user_id: int) -> bool:
        result = await self.session.execute(
            select(func.count(LikeModel.id)).where(
                LikeModel.template_id == template_id,
                LikeModel.user_id == user_id
            )
        )
        return result.scalar() > 0

    async def create(self, template_id: int, user_id: int) -> None:
        self.session.add(LikeModel(template_id=template_id, user_id=user_id))
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Already liked")

    async def delete(self, template_id: int, user_id: int) -> bool:
        result = await self.session.execute(
            delete(LikeModel)
            .where(LikeModel.template_id == template_id, LikeModel.user_id == user_id)
        )
        await self._commit()
        return result.rowcount > 0

    async def count(self, template_id: int) -> int:
        result = await self.session.execute(
            select(func.count(LikeModel.id)).where(LikeModel.template_id == template_id)
        )
        return result.scalar()


class TagRepository(BaseRepository):
    """Репозиторий для работы с тегами"""

    async def list_visible(self, user_id: Optional[int] = None, is_admin: bool = False) -> List[TagModel]:
        """Теги, привязанные хотя бы к одному видимому шаблону"""
        visible = TemplateModel.is_public.is_(True)
        if user_id is not None:
            visible = or_(
                visible,
                TemplateModel.created_by == user_id,
                TemplateModel.access.any(TemplateAccessModel.user_id == user_id)
            )

        stmt = (
            select(TagModel)
            .join(TemplateTagModel, TemplateTagModel.tag_id == TagModel.id)
            .join(TemplateModel, TemplateModel.id == TemplateTagModel.template_id)
        )
        if not is_admin:
            stmt = stmt.where(visible)

        result = await self.session.execute(stmt.distinct().order_by(TagModel.name))
        return list(result.scalars().all())
