from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Union
from datetime import datetime

AnswerValue = Union[bool, int, float, str, None]


class AnswerInput(BaseModel):
    """Ответ на вопрос; число и флаг сохраняются строкой"""
    question_id: int
    value: AnswerValue = None


class FormSubmit(BaseModel):
    """Схема для отправки и изменения формы"""
    answers: List[AnswerInput] = Field(default_factory=list)


class AnswerResponse(BaseModel):
    id: int
    question_id: int
    value: str

    model_config = ConfigDict(from_attributes=True)


class FormResponse(BaseModel):
    """Схема для ответа с формой"""
    id: int
    template_id: int
    template_title: Optional[str] = None
    user_id: int
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    created_at: datetime
    answers: List[AnswerResponse]

    model_config = ConfigDict(from_attributes=True)
