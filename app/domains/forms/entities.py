from datetime import datetime, timezone
from typing import Optional, List


class Answer:
    """Ответ на один вопрос формы, значение всегда строка"""
    
    def __init__(self, id: Optional[int], question_id: int, value: str, form_id: Optional[int] = None):
        self.id = id
        self.form_id = form_id
        self.question_id = question_id
        self.value = value
    
    def __repr__(self) -> str:
        return f"Answer(question_id={self.question_id}, value={self.value!r})"


class Form:
    """Заполненная форма шаблона"""
    
    def __init__(
        self,
        id: Optional[int],
        template_id: int,
        user_id: int,
        answers: Optional[List[Answer]] = None,
        user_name: Optional[str] = None,
        user_email: Optional[str] = None,
        template_title: Optional[str] = None,
        created_at: Optional[datetime] = None
    ):
        self.id = id
        self.template_id = template_id
        self.user_id = user_id
        self.answers = answers or []
        self.user_name = user_name
        self.user_email = user_email
        self.template_title = template_title
        self.created_at = created_at or datetime.now(timezone.utc)
    
    def answer_for(self, question_id: int) -> Optional[Answer]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None
    
    def __repr__(self) -> str:
        return f"Form(id={self.id}, template_id={self.template_id}, user_id={self.user_id})"
