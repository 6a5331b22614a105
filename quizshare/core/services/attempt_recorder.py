"""Shapes submitted attempts into immutable records and hands them to storage."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
import logging

from quizshare.core.errors import PersistenceError
from quizshare.core.models import (
    AttemptRecord,
    AttemptResponse,
    Question,
    Quiz,
    SubmitterIdentity,
)

logger = logging.getLogger(__name__)

AttemptWriter = Callable[[AttemptRecord], None]


def build_attempt_record(
    quiz: Quiz,
    answers: Mapping[int, object],
    submitter: SubmitterIdentity,
    score_percent: int,
    submitted_at: datetime,
    time_remaining_seconds: int | None = None,
) -> AttemptRecord:
    if not 0 <= score_percent <= 100:
        raise ValueError("Score must be between 0 and 100.")
    responses = tuple(
        AttemptResponse(question=question.text, answer=_format_answer(question, answers.get(index)))
        for index, question in enumerate(quiz.questions)
    )
    return AttemptRecord(
        quiz_id=quiz.id,
        quiz_topic=quiz.topic,
        submitter=submitter,
        score_percent=score_percent,
        responses=responses,
        submitted_at=submitted_at,
        time_remaining_seconds=time_remaining_seconds if quiz.timed else None,
    )


class AttemptRecorder:
    """Appends records through ``write``; the caller picks the destination."""

    def __init__(self, write: AttemptWriter) -> None:
        self._write = write

    def record(self, record: AttemptRecord) -> AttemptRecord:
        try:
            self._write(record)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Could not save attempt for quiz {record.quiz_id}: {exc}") from exc
        logger.info(
            "Recorded attempt on quiz %s by %s (%s%%)",
            record.quiz_id,
            record.submitter.label,
            record.score_percent,
        )
        return record


def _format_answer(question: Question, value: object) -> str | list[str] | None:
    if value is None:
        return None
    if isinstance(value, (set, frozenset)):
        return question.ordered_selection(frozenset(value))
    return str(value)
