"""Validation of quiz payloads crossing the storage/LLM boundary.

``validate_quiz`` is a pure function: it never mutates its input and returns a
new :class:`Quiz`. Feeding a returned quiz back in yields an equal quiz.
Error messages number questions from 1, matching what authors see.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
import math

from quizshare.core.errors import ValidationError
from quizshare.core.models import AnswerValue, Question, QuestionType, Quiz
from quizshare.core.question_types import normalize_question_type


def validate_quiz(candidate: Quiz | Mapping[str, object]) -> Quiz:
    """Check every quiz invariant and return the normalised quiz."""
    if isinstance(candidate, Quiz):
        candidate = candidate.to_payload()
    if not isinstance(candidate, Mapping):
        raise ValidationError("Quiz payload must be an object.", field="quiz")

    owner_id = _pick(candidate, "ownerId", "owner_id", "userId")
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise ValidationError("Quiz owner is missing.", field="ownerId")

    topic = candidate.get("topic")
    if not isinstance(topic, str) or not topic.strip():
        raise ValidationError("Quiz topic must not be empty.", field="topic")

    questions = validate_questions(candidate.get("questions"))

    timed = _optional_bool(candidate.get("timed"), "timed")
    duration = _pick(candidate, "timerDurationMinutes", "timer_duration_minutes")
    if timed:
        duration = _positive_number(duration, "timerDurationMinutes")
    elif duration is not None:
        duration = _positive_number(duration, "timerDurationMinutes")

    quiz_id = candidate.get("id")
    if quiz_id is not None and not isinstance(quiz_id, str):
        quiz_id = str(quiz_id)

    return Quiz(
        id=quiz_id,
        owner_id=owner_id.strip(),
        topic=topic.strip(),
        questions=questions,
        timed=timed,
        timer_duration_minutes=duration,
        deadline=parse_deadline(candidate.get("deadline")),
        share_enabled=_optional_bool(
            _pick(candidate, "shareEnabled", "share_enabled"), "shareEnabled"
        ),
    )


def validate_questions(raw_questions: object) -> tuple[Question, ...]:
    """Validate an ordered list of question payloads."""
    if isinstance(raw_questions, (str, bytes)) or not isinstance(raw_questions, Sequence):
        raise ValidationError("Questions must be a list.", field="questions")
    if not raw_questions:
        raise ValidationError("Quiz must contain at least one question.", field="questions")
    return tuple(
        validate_question(raw, position=index + 1) for index, raw in enumerate(raw_questions)
    )


def validate_question(raw: object, *, position: int) -> Question:
    if isinstance(raw, Question):
        raw = raw.to_payload()
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Question {position} must be an object.", field="questions")

    question_type = normalize_question_type(raw.get("type"), position=position)

    text = _pick(raw, "text", "question")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(f"Question text missing at question {position}", field="text")

    options = _validate_options(question_type, raw.get("options"), position)
    expected = _validate_expected(
        question_type, _pick(raw, "expectedAnswer", "expected_answer", "answer"), options, position
    )
    return Question(
        type=question_type,
        text=text.strip(),
        expected_answer=expected,
        options=options,
    )


def parse_deadline(raw: object) -> datetime | None:
    """Parse an ISO string, datetime, or epoch milliseconds into aware UTC."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, bool):
        raise ValidationError("Deadline must be a timestamp.", field="deadline")
    elif isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            raise ValidationError("Deadline must be a timestamp.", field="deadline")
        parsed = datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
    elif isinstance(raw, str):
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Deadline {raw!r} is not an ISO-8601 timestamp.", field="deadline") from exc
    else:
        raise ValidationError("Deadline must be a timestamp.", field="deadline")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _validate_options(
    question_type: QuestionType, raw: object, position: int
) -> tuple[str, ...] | None:
    if not question_type.has_options:
        if raw:
            raise ValidationError(
                f"{question_type.value} question must not define options at question {position}",
                field="options",
            )
        return None
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence) or not raw:
        raise ValidationError(
            f"{question_type.value} options missing at question {position}", field="options"
        )
    cleaned: list[str] = []
    for option in raw:
        if isinstance(option, bool) or not isinstance(option, (str, int, float)):
            raise ValidationError(f"Option must be text at question {position}", field="options")
        text = str(option).strip()
        if not text:
            raise ValidationError(f"Option text cannot be empty at question {position}", field="options")
        cleaned.append(text)
    return tuple(cleaned)


def _validate_expected(
    question_type: QuestionType,
    raw: object,
    options: tuple[str, ...] | None,
    position: int,
) -> AnswerValue:
    if question_type is QuestionType.MSQ:
        if isinstance(raw, (str, bytes)) or not isinstance(raw, (Sequence, set, frozenset)):
            raise ValidationError(
                f"MSQ answer must be a list of options at question {position}",
                field="expectedAnswer",
            )
        selection = frozenset(str(item).strip() for item in raw)
        if not selection:
            raise ValidationError(
                f"MSQ answer missing at question {position}", field="expectedAnswer"
            )
        missing = selection.difference(options or ())
        if missing:
            raise ValidationError(
                f"MSQ answer not in options at question {position}", field="expectedAnswer"
            )
        return selection

    if raw is None or isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise ValidationError(
            f"{question_type.value} answer missing at question {position}", field="expectedAnswer"
        )
    answer = str(raw).strip()
    if not answer:
        raise ValidationError(
            f"{question_type.value} answer missing at question {position}", field="expectedAnswer"
        )
    if question_type is QuestionType.MCQ and answer not in (options or ()):
        raise ValidationError(
            f"MCQ answer not in options at question {position}", field="expectedAnswer"
        )
    return answer


def _pick(payload: Mapping[str, object], *keys: str) -> object:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _optional_bool(raw: object, field: str) -> bool:
    if raw is None:
        return False
    if not isinstance(raw, bool):
        raise ValidationError(f"{field} must be true or false.", field=field)
    return raw


def _positive_number(raw: object, field: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationError(f"{field} must be a positive number.", field=field)
    if not math.isfinite(raw) or raw <= 0:
        raise ValidationError(f"{field} must be a positive number.", field=field)
    return raw
