import enum
from datetime import datetime, timezone
from typing import Optional, List, Iterable, Set, TYPE_CHECKING

if TYPE_CHECKING:
    from app.domains.forms.entities import Form


class Topic(str, enum.Enum):
    EDUCATION = "Education"
    QUIZ = "Quiz"
    OTHER = "Other"


class QuestionType(str, enum.Enum):
    SINGLE_LINE = "single_line"
    MULTI_LINE = "multi_line"
    POSITIVE_INTEGER = "positive_integer"
    CHECKBOX = "checkbox"
    FIXED_USER = "fixed_user"
    FIXED_DATE = "fixed_date"

    @property
    def is_fixed(self) -> bool:
        return self in FIXED_QUESTION_TYPES


FIXED_QUESTION_TYPES = frozenset({QuestionType.FIXED_USER, QuestionType.FIXED_DATE})

# Системные вопросы всегда идут перед пользовательскими
FIXED_QUESTION_ORDERS = {
    QuestionType.FIXED_USER: -2,
    QuestionType.FIXED_DATE: -1,
}
FIXED_QUESTION_TITLES = {
    QuestionType.FIXED_USER: "Submitted by",
    QuestionType.FIXED_DATE: "Submission date",
}

MAX_QUESTIONS_PER_TYPE = 4


class Question:
    """Вопрос шаблона"""
    
    def __init__(
        self,
        id: Optional[int],
        template_id: Optional[int],
        type: QuestionType,
        title: str,
        order: int,
        description: str = "",
        fixed: bool = False,
        required: bool = False
    ):
        self.id = id
        self.template_id = template_id
        self.type = QuestionType(type)
        self.title = title
        self.order = order
        self.description = description
        self.fixed = fixed
        self.required = required
    
    @classmethod
    def create_fixed(cls, question_type: QuestionType, template_id: Optional[int] = None) -> "Question":
        """Создание системного вопроса (отправитель или дата отправки)"""
        return cls(
            id=None,
            template_id=template_id,
            type=question_type,
            title=FIXED_QUESTION_TITLES[question_type],
            description=FIXED_QUESTION_TITLES[question_type],
            order=FIXED_QUESTION_ORDERS[question_type],
            fixed=True,
            required=True
        )
    
    def copy(self) -> "Question":
        return Question(
            id=None,
            template_id=None,
            type=self.type,
            title=self.title,
            order=self.order,
            description=self.description,
            fixed=self.fixed,
            required=self.required
        )
    
    def __repr__(self) -> str:
        return f"Question(id={self.id}, type={self.type.value}, order={self.order}, fixed={self.fixed})"


class AccessGrant:
    """Явный доступ пользователя к непубличному шаблону"""
    
    def __init__(self, user_id: int, email: Optional[str] = None, name: Optional[str] = None):
        self.user_id = user_id
        self.email = email
        self.name = name


class Comment:
    """Комментарий к шаблону"""
    
    def __init__(
        self,
        id: Optional[int],
        template_id: int,
        user_id: int,
        content: str,
        user_name: Optional[str] = None,
        created_at: Optional[datetime] = None
    ):
        self.id = id
        self.template_id = template_id
        self.user_id = user_id
        self.content = content
        self.user_name = user_name
        self.created_at = created_at or datetime.now(timezone.utc)


class Template:
    """Агрегат шаблона: вопросы, теги, доступы, формы, комментарии и лайки"""
    
    def __init__(
        self,
        id: Optional[int],
        title: str,
        topic: Topic,
        created_by: int,
        description: str = "",
        image_url: Optional[str] = None,
        is_public: bool = False,
        creator_name: Optional[str] = None,
        questions: Optional[List[Question]] = None,
        tags: Optional[List[str]] = None,
        access: Optional[List[AccessGrant]] = None,
        forms: Optional[List["Form"]] = None,
        comments: Optional[List[Comment]] = None,
        likes: Optional[List[int]] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.id = id
        self.title = title
        self.topic = Topic(topic)
        self.created_by = created_by
        self.description = description
        self.image_url = image_url
        self.is_public = is_public
        self.creator_name = creator_name
        self.questions = questions or []
        self.tags = tags or []
        self.access = access or []
        self.forms = forms or []
        self.comments = comments or []
        self.likes = likes or []
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)
    
    @property
    def access_user_ids(self) -> Set[int]:
        return {grant.user_id for grant in self.access}
    
    @property
    def likes_count(self) -> int:
        return len(self.likes)
    
    def ordered_questions(self) -> List[Question]:
        """Вопросы в порядке отображения"""
        return sorted(self.questions, key=lambda q: (q.order, q.id or 0))
    
    def find_question(self, question_id: int) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
    
    def fixed_question(self, question_type: QuestionType) -> Optional[Question]:
        for question in self.questions:
            if question.fixed and question.type == question_type:
                return question
        return None
    
    def count_questions_of_type(self, question_type: QuestionType, exclude_id: Optional[int] = None) -> int:
        """Количество нефиксированных вопросов заданного типа"""
        return sum(
            1 for q in self.questions
            if not q.fixed and q.type == question_type and q.id != exclude_id
        )
    
    @staticmethod
    def build_questions(fields: Iterable) -> List[Question]:
        """Вопросы нового шаблона: поля по порядку 0..n-1 и два системных вопроса"""
        questions = [
            Question(
                id=None,
                template_id=None,
                type=field.type,
                title=field.label.strip(),
                description=field.description or field.label.strip(),
                order=index,
                fixed=False,
                required=field.required
            )
            for index, field in enumerate(fields)
        ]
        questions.append(Question.create_fixed(QuestionType.FIXED_USER))
        questions.append(Question.create_fixed(QuestionType.FIXED_DATE))
        return questions
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Template):
            return False
        return self.id == other.id
    
    def __hash__(self) -> int:
        return hash(self.id)
    
    def __repr__(self) -> str:
        return f"Template(id={self.id}, title={self.title}, public={self.is_public})"
