from app.domains.templates.entities import (
    Template, Question, Comment, AccessGrant, Topic, QuestionType
)
from app.domains.templates.schemas import (
    FieldInput, TemplateCreate, TemplateUpdate, QuestionCreate, QuestionUpdate,
    QuestionOrderItem, QuestionReorder, ShareRequest, CommentCreate,
    QuestionResponse, AccessGrantResponse, CommentResponse, TagResponse,
    TemplateSummaryResponse, TemplateDetailResponse, LikeResponse
)

__all__ = [
    "Template", "Question", "Comment", "AccessGrant", "Topic", "QuestionType",
    "FieldInput", "TemplateCreate", "TemplateUpdate", "QuestionCreate", "QuestionUpdate",
    "QuestionOrderItem", "QuestionReorder", "ShareRequest", "CommentCreate",
    "QuestionResponse", "AccessGrantResponse", "CommentResponse", "TagResponse",
    "TemplateSummaryResponse", "TemplateDetailResponse", "LikeResponse"
]
