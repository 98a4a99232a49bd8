from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.auth import get_current_user
from app.core.db import get_db
from app.domains.forms.schemas import FormSubmit, FormResponse
from app.domains.forms.services import FormService
from app.domains.identity.entities import User

router = APIRouter(prefix="/forms", tags=["forms"])


@router.get("/", response_model=List[FormResponse])
async def list_forms(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Свои формы и ответы на свои шаблоны"""
    form_service = FormService(db)
    forms = await form_service.list_forms(current_user, limit=per_page, offset=(page - 1) * per_page)
    return [FormResponse.model_validate(form) for form in forms]


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(
    form_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    form_service = FormService(db)
    form = await form_service.get_form(form_id, current_user)
    return FormResponse.model_validate(form)


@router.put("/{form_id}", response_model=FormResponse)
async def update_form(
    form_id: int,
    data: FormSubmit,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Замена всех ответов формы"""
    form_service = FormService(db)
    form = await form_service.update_form(form_id, current_user, data.answers)
    return FormResponse.model_validate(form)


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form(
    form_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    form_service = FormService(db)
    await form_service.delete_form(form_id, current_user)
