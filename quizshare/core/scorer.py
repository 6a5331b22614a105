"""Percentage scoring of submitted answers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging

from quizshare.core.models import Question, QuestionType

logger = logging.getLogger(__name__)


def score(questions: Sequence[Question], answers: Mapping[int, object]) -> int:
    """Return the integer percentage of correctly answered questions.

    ``questions`` must be non-empty; quiz validation guarantees that before an
    attempt can exist.
    """
    total = len(questions)
    correct = count_correct(questions, answers)
    # Half-up rounding so that 12.5 becomes 13.
    return (200 * correct + total) // (2 * total)


def count_correct(questions: Sequence[Question], answers: Mapping[int, object]) -> int:
    return sum(
        1 for index, question in enumerate(questions) if is_correct(question, answers.get(index))
    )


def is_correct(question: Question, submitted: object) -> bool:
    if question.type is QuestionType.MSQ:
        expected = _normalize_selection(question.expected_answer)
        selection = _normalize_selection(submitted)
        if expected is None or selection is None:
            return False
        return selection == expected

    if question.type in (QuestionType.MCQ, QuestionType.SHORT_ANSWER, QuestionType.NUMERICAL):
        if submitted is None or isinstance(submitted, (set, frozenset, list, tuple)):
            return False
        given = _normalize_text(submitted)
        if not given:
            return False
        return given == _normalize_text(question.expected_answer)

    logger.warning("Skipping question with unsupported type %r while scoring", question.type)
    return False


def _normalize_text(value: object) -> str:
    return str(value).strip().casefold()


def _normalize_selection(value: object) -> frozenset[str] | None:
    if value is None or isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return None
    return frozenset(_normalize_text(item) for item in value)
