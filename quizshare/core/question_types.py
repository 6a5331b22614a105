"""Normalization of question-type strings into :class:`QuestionType`.

Stored quizzes and LLM output spell types in many ways ("MCQ", "mcq",
"multiple_choice", "Short Answer", ...). Everything downstream of the data
boundary switches on the enum only.
"""

from __future__ import annotations

from quizshare.core.errors import ValidationError
from quizshare.core.models import QuestionType

_ALIASES: dict[str, QuestionType] = {
    "mcq": QuestionType.MCQ,
    "multiple_choice": QuestionType.MCQ,
    "multiplechoice": QuestionType.MCQ,
    "msq": QuestionType.MSQ,
    "multiple_select": QuestionType.MSQ,
    "multipleselect": QuestionType.MSQ,
    "shortanswer": QuestionType.SHORT_ANSWER,
    "short_answer": QuestionType.SHORT_ANSWER,
    "numerical": QuestionType.NUMERICAL,
    "numeric": QuestionType.NUMERICAL,
    "number": QuestionType.NUMERICAL,
}


def lookup_question_type(raw: object) -> QuestionType | None:
    """Return the matching type, or ``None`` when ``raw`` is not recognised."""
    if isinstance(raw, QuestionType):
        return raw
    if not isinstance(raw, str):
        return None
    key = raw.strip().lower().replace("-", "_").replace(" ", "_")
    if key in _ALIASES:
        return _ALIASES[key]
    return _ALIASES.get(key.replace("_", ""))


def normalize_question_type(raw: object, *, position: int | None = None) -> QuestionType:
    """Return the :class:`QuestionType` for ``raw`` or raise ``ValidationError``."""
    question_type = lookup_question_type(raw)
    if question_type is None:
        where = f" at question {position}" if position is not None else ""
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise ValidationError(f"Question type missing{where}", field="type")
        raise ValidationError(f"Unknown question type {raw!r}{where}", field="type")
    return question_type
