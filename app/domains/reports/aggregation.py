"""
Агрегация ответов по шаблону.

Все функции чистые: на вход приходит собранный агрегат шаблона с формами,
на выходе сводки для просмотра результатов и CSV для выгрузки. Ответы
хранятся строками, поэтому числа разбираются здесь, а флажки сравниваются
с ``"true"`` и ``"false"`` буквально.
"""

import csv
import io
import math
from typing import Dict, Iterable, List, Optional

from app.domains.forms.entities import Form
from app.domains.templates.entities import Question, QuestionType, Template

RAW_ANSWER_TYPES = (
    QuestionType.SINGLE_LINE,
    QuestionType.MULTI_LINE,
    QuestionType.POSITIVE_INTEGER,
)
CSV_FIXED_HEADER = ["Form ID", "Submitted By", "Submitted At"]


def parse_number(value: Optional[str]) -> Optional[float]:
    """Число из сохраненного ответа или None, если разобрать нельзя"""
    if value is None or not value.strip():
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def numeric_summary(values: Iterable[Optional[str]]) -> Dict[str, Optional[float]]:
    """Количество, среднее и максимум по разобранным числам"""
    numbers = [n for n in (parse_number(v) for v in values) if n is not None]
    if not numbers:
        return {"count": 0, "average": None, "max": None}
    return {
        "count": len(numbers),
        "average": sum(numbers) / len(numbers),
        "max": max(numbers),
    }


def checkbox_tally(values: Iterable[Optional[str]]) -> Dict[str, int]:
    values = list(values)
    return {
        "true_count": sum(1 for v in values if v == "true"),
        "false_count": sum(1 for v in values if v == "false"),
    }


def answers_for(question: Question, forms: Iterable[Form]) -> List[str]:
    """Значения ответов на вопрос в порядке форм"""
    values = []
    for form in forms:
        answer = form.answer_for(question.id)
        if answer is not None:
            values.append(answer.value)
    return values


def template_results(template: Template) -> Dict:
    """Сводка по всем нефиксированным вопросам шаблона"""
    numeric, raw, checkboxes = [], [], []
    questions = [q for q in template.ordered_questions() if not q.fixed]

    for question in questions:
        values = answers_for(question, template.forms)

        if question.type == QuestionType.POSITIVE_INTEGER:
            numeric.append({
                "question_id": question.id,
                "title": question.title,
                **numeric_summary(values),
            })

        if question.type in RAW_ANSWER_TYPES:
            raw.append({
                "question_id": question.id,
                "title": question.title,
                "type": question.type.value,
                "values": values,
            })
        elif question.type == QuestionType.CHECKBOX:
            checkboxes.append({
                "question_id": question.id,
                "title": question.title,
                **checkbox_tally(values),
            })

    return {
        "template_id": template.id,
        "forms_count": len(template.forms),
        "numeric": numeric,
        "raw_answers": raw,
        "checkboxes": checkboxes,
    }


def build_csv(template: Template) -> str:
    """
    Таблица ответов: по строке на форму, по колонке на вопрос.

    Системные вопросы в колонки не попадают, их значения уже есть в
    "Submitted By" и "Submitted At". Строки в кавычках, id формы без них.
    """
    questions = [q for q in template.ordered_questions() if not q.fixed]

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_FIXED_HEADER + [q.title for q in questions])

    for form in template.forms:
        row = [
            form.id,
            form.user_name or "",
            form.created_at.isoformat() if form.created_at else "",
        ]
        for question in questions:
            answer = form.answer_for(question.id)
            row.append(answer.value if answer is not None else "")
        writer.writerow(row)

    return output.getvalue()[:-1]


def csv_filename(template: Template) -> str:
    return f"{template.title}_responses.csv"
