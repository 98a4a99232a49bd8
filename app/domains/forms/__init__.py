from app.domains.forms.entities import Form, Answer
from app.domains.forms.schemas import AnswerInput, FormSubmit, AnswerResponse, FormResponse

__all__ = [
    "Form", "Answer",
    "AnswerInput", "FormSubmit", "AnswerResponse", "FormResponse"
]
