from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime

from app.domains.forms.schemas import FormResponse
from app.domains.reports.schemas import TemplateResults
from app.domains.templates.entities import Topic, QuestionType


TAG_MAX_LENGTH = 64


def _clean_tags(v):
    if v is None:
        return v
    tags = [tag.strip() for tag in v if tag and tag.strip()]
    for tag in tags:
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Tag must be at most {TAG_MAX_LENGTH} characters")
    return tags


class FieldInput(BaseModel):
    """Поле нового шаблона: из него строится вопрос"""
    type: QuestionType
    label: str = Field(..., max_length=255)
    description: Optional[str] = None
    required: bool = False


class TemplateCreate(BaseModel):
    """Схема для создания шаблона"""
    title: str = Field(..., max_length=255)
    description: str = ""
    topic: Topic
    image_url: Optional[str] = Field(None, max_length=1024)
    is_public: bool = False
    tags: List[str] = []
    access_user_ids: List[int] = []
    fields: List[FieldInput] = []

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class TemplateUpdate(BaseModel):
    """
    Схема для обновления шаблона.

    ``topic`` и ``image_url`` при отсутствии берутся из шаблона, а
    отсутствующий ``is_public`` означает приватный шаблон. ``tags`` и
    ``access_user_ids`` заменяются целиком, если переданы.
    """
    title: str = Field(..., max_length=255)
    description: str = ""
    topic: Optional[Topic] = None
    image_url: Optional[str] = Field(None, max_length=1024)
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = None
    access_user_ids: Optional[List[int]] = None

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class QuestionCreate(BaseModel):
    """Схема для добавления вопроса"""
    type: QuestionType
    title: str = Field(..., max_length=255)
    description: str = ""
    order: Optional[int] = None
    required: bool = False


class QuestionUpdate(BaseModel):
    """Схема для изменения вопроса"""
    type: Optional[QuestionType] = None
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    required: Optional[bool] = None


class QuestionOrderItem(BaseModel):
    id: int
    order: int


class QuestionReorder(BaseModel):
    """Новый порядок вопросов"""
    questions: List[QuestionOrderItem] = Field(..., min_length=1)


class ShareRequest(BaseModel):
    email: EmailStr


class CommentCreate(BaseModel):
    content: str = Field(..., max_length=5000)


class QuestionResponse(BaseModel):
    id: int
    template_id: int
    type: QuestionType
    title: str
    description: str
    order: int
    fixed: bool
    required: bool

    model_config = ConfigDict(from_attributes=True)


class AccessGrantResponse(BaseModel):
    user_id: int
    email: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    id: int
    template_id: int
    user_id: int
    user_name: Optional[str] = None
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TagResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class TemplateSummaryResponse(BaseModel):
    """Шаблон в списках"""
    id: int
    title: str
    description: str
    topic: Topic
    image_url: Optional[str] = None
    is_public: bool
    created_by: int
    creator_name: Optional[str] = None
    tags: List[str]
    likes_count: int
    forms_count: int
    created_at: datetime
    updated_at: datetime


class TemplateDetailResponse(TemplateSummaryResponse):
    """Полный шаблон со всеми связями"""
    description_html: str
    questions: List[QuestionResponse]
    access: List[AccessGrantResponse]
    forms: List[FormResponse]
    comments: List[CommentResponse]
    liked_by_me: bool = False
    results: TemplateResults


class LikeResponse(BaseModel):
    template_id: int
    liked: bool
    likes_count: int
