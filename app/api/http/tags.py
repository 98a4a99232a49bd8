from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.auth import get_optional_user
from app.core.db import get_db
from app.domains.identity.entities import User
from app.domains.templates.schemas import TagResponse
from app.domains.templates.services import TemplateService

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=List[TagResponse])
async def list_tags(
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Теги шаблонов, видимых пользователю"""
    template_service = TemplateService(db)
    tags = await template_service.list_tags(current_user)
    return [TagResponse.model_validate(tag) for tag in tags]
