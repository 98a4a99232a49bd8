from pydantic import BaseModel
from typing import Optional, List


class NumericSummary(BaseModel):
    """Сводка по вопросу с положительным целым"""
    question_id: int
    title: str
    count: int
    average: Optional[float] = None
    max: Optional[float] = None


class RawAnswers(BaseModel):
    question_id: int
    title: str
    type: str
    values: List[str]


class CheckboxTally(BaseModel):
    question_id: int
    title: str
    true_count: int
    false_count: int


class TemplateResults(BaseModel):
    """Агрегированные результаты по всем формам шаблона"""
    template_id: int
    forms_count: int
    numeric: List[NumericSummary]
    raw_answers: List[RawAnswers]
    checkboxes: List[CheckboxTally]
