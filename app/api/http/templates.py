from fastapi import APIRouter, Depends, status, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from urllib.parse import quote

from app.core.auth import get_current_user, get_optional_user
from app.core.db import get_db
from app.domains.forms.schemas import FormSubmit, FormResponse
from app.domains.forms.services import FormService
from app.domains.identity.entities import User
from app.domains.reports.aggregation import template_results
from app.domains.reports.schemas import TemplateResults
from app.domains.reports.services import ReportService
from app.domains.templates.entities import Template
from app.domains.templates.schemas import (
    TemplateCreate, TemplateUpdate, QuestionCreate, QuestionUpdate, QuestionReorder,
    ShareRequest, CommentCreate, QuestionResponse, AccessGrantResponse, CommentResponse,
    TemplateSummaryResponse, TemplateDetailResponse, LikeResponse
)
from app.domains.templates.services import TemplateService, render_description

router = APIRouter(prefix="/templates", tags=["templates"])


def _summary_fields(template: Template) -> dict:
    return dict(
        id=template.id,
        title=template.title,
        description=template.description,
        topic=template.topic,
        image_url=template.image_url,
        is_public=template.is_public,
        created_by=template.created_by,
        creator_name=template.creator_name,
        tags=template.tags,
        likes_count=template.likes_count,
        forms_count=len(template.forms),
        created_at=template.created_at,
        updated_at=template.updated_at
    )


def to_summary(template: Template) -> TemplateSummaryResponse:
    return TemplateSummaryResponse(**_summary_fields(template))


def to_detail(template: Template, actor: Optional[User] = None) -> TemplateDetailResponse:
    """Полное представление шаблона вместе с результатами"""
    return TemplateDetailResponse(
        **_summary_fields(template),
        description_html=render_description(template.description),
        questions=[QuestionResponse.model_validate(q) for q in template.ordered_questions()],
        access=[AccessGrantResponse.model_validate(grant) for grant in template.access],
        forms=[FormResponse.model_validate(form) for form in template.forms],
        comments=[CommentResponse.model_validate(c) for c in template.comments],
        liked_by_me=actor is not None and actor.id in template.likes,
        results=TemplateResults(**template_results(template))
    )


@router.get("/", response_model=List[TemplateSummaryResponse])
async def list_templates(
    tag: Optional[str] = Query(None),
    search: Optional[str] = Query(None, min_length=1),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Публичные, собственные и выданные пользователю шаблоны"""
    template_service = TemplateService(db)
    templates = await template_service.list_templates(
        current_user,
        tag=tag,
        search=search,
        limit=per_page,
        offset=(page - 1) * per_page
    )
    return [to_summary(t) for t in templates]


@router.get("/shared", response_model=List[TemplateSummaryResponse])
async def list_shared_templates(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Шаблоны, к которым пользователю выдан доступ"""
    template_service = TemplateService(db)
    templates = await template_service.list_shared_templates(current_user)
    return [to_summary(t) for t in templates]


@router.post("/", response_model=TemplateDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_data: TemplateCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Создание нового шаблона"""
    template_service = TemplateService(db)
    template = await template_service.create_template(current_user, template_data)
    return to_detail(template, current_user)


@router.get("/{template_id}", response_model=TemplateDetailResponse)
async def get_template(
    template_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Получение шаблона по id"""
    template_service = TemplateService(db)
    template = await template_service.get_readable_template(template_id, current_user)
    return to_detail(template, current_user)


@router.put("/{template_id}", response_model=TemplateDetailResponse)
async def update_template(
    template_id: int,
    update_data: TemplateUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Обновление шаблона"""
    template_service = TemplateService(db)
    template = await template_service.update_template(template_id, current_user, update_data)
    return to_detail(template, current_user)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление шаблона со всеми формами"""
    template_service = TemplateService(db)
    await template_service.delete_template(template_id, current_user)


@router.post("/{template_id}/duplicate", response_model=TemplateDetailResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    template = await template_service.duplicate_template(template_id, current_user)
    return to_detail(template, current_user)


@router.post("/{template_id}/share", response_model=TemplateDetailResponse)
async def share_template(
    template_id: int,
    share_data: ShareRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Выдача доступа пользователю по email"""
    template_service = TemplateService(db)
    template = await template_service.share_template(template_id, current_user, share_data.email)
    return to_detail(template, current_user)


@router.post("/{template_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def add_question(
    template_id: int,
    question_data: QuestionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    question = await template_service.add_question(template_id, current_user, question_data)
    return QuestionResponse.model_validate(question)


@router.put("/{template_id}/questions/order", response_model=TemplateDetailResponse)
async def reorder_questions(
    template_id: int,
    reorder_data: QuestionReorder,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Новый порядок вопросов"""
    template_service = TemplateService(db)
    template = await template_service.reorder_questions(template_id, current_user, reorder_data.questions)
    return to_detail(template, current_user)


@router.patch("/{template_id}/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    template_id: int,
    question_id: int,
    question_data: QuestionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    question = await template_service.update_question(template_id, question_id, current_user, question_data)
    return QuestionResponse.model_validate(question)


@router.delete("/{template_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    template_id: int,
    question_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    await template_service.delete_question(template_id, question_id, current_user)


@router.get("/{template_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    template_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    comments = await template_service.list_comments(template_id, current_user)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post("/{template_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    template_id: int,
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    comment = await template_service.add_comment(template_id, current_user, comment_data.content)
    return CommentResponse.model_validate(comment)


@router.put("/{template_id}/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    template_id: int,
    comment_id: int,
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    comment = await template_service.update_comment(template_id, comment_id, current_user, comment_data.content)
    return CommentResponse.model_validate(comment)


@router.delete("/{template_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    template_id: int,
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    await template_service.delete_comment(template_id, comment_id, current_user)


@router.post("/{template_id}/like", response_model=LikeResponse)
async def like_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    likes_count = await template_service.like_template(template_id, current_user)
    return LikeResponse(template_id=template_id, liked=True, likes_count=likes_count)


@router.delete("/{template_id}/like", response_model=LikeResponse)
async def unlike_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    template_service = TemplateService(db)
    likes_count = await template_service.unlike_template(template_id, current_user)
    return LikeResponse(template_id=template_id, liked=False, likes_count=likes_count)


@router.post("/{template_id}/forms", response_model=FormResponse, status_code=status.HTTP_201_CREATED)
async def submit_form(
    template_id: int,
    form_data: FormSubmit,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Отправка заполненной формы"""
    form_service = FormService(db)
    form = await form_service.submit_form(template_id, current_user, form_data.answers)
    return FormResponse.model_validate(form)


@router.get("/{template_id}/results", response_model=TemplateResults)
async def get_results(
    template_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Агрегированные результаты по формам шаблона"""
    report_service = ReportService(db)
    return await report_service.get_results(template_id, current_user)


@router.get("/{template_id}/export")
async def export_responses(
    template_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Выгрузка ответов в CSV"""
    report_service = ReportService(db)
    filename, content = await report_service.export_csv(template_id, current_user)

    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}
    )
