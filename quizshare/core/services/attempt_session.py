"""State machine for a single user's run through a quiz."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
import logging
from threading import RLock
from uuid import uuid4

from quizshare.core import scorer
from quizshare.core.errors import (
    AlreadySubmittedError,
    AttemptStateError,
    DeadlinePassedError,
    PersistenceError,
    ValidationError,
)
from quizshare.core.models import (
    AnswerValue,
    AttemptStatus,
    Question,
    QuestionType,
    Quiz,
    SubmissionResult,
    SubmitterIdentity,
)
from quizshare.core.services.attempt_recorder import AttemptRecorder, build_attempt_record
from quizshare.core.services.countdown import Countdown

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AttemptSession:
    """Tracks answers, countdown and submission for one attempt.

    Edits are ignored (and reported as ``False``) once the attempt is
    submitted, its timer has expired, or the quiz deadline has passed. An
    expired timer never blocks a manual :meth:`submit`.

    Every public method holds the session's re-entrant lock, so request
    threads sharing one attempt see a consistent countdown.
    """

    def __init__(
        self,
        quiz: Quiz,
        submitter: SubmitterIdentity,
        recorder: AttemptRecorder,
        clock: Clock = utc_now,
        attempt_id: str | None = None,
    ) -> None:
        self.attempt_id = attempt_id or uuid4().hex
        self._quiz = quiz
        self._submitter = submitter
        self._recorder = recorder
        self._clock = clock
        self._lock = RLock()
        self._status = AttemptStatus.NOT_STARTED
        self._answers: dict[int, AnswerValue] = {}
        self._result: SubmissionResult | None = None
        duration = quiz.timer_duration_seconds
        self._countdown: Countdown | None = Countdown(duration) if duration else None

    @property
    def quiz(self) -> Quiz:
        return self._quiz

    @property
    def submitter(self) -> SubmitterIdentity:
        return self._submitter

    @property
    def status(self) -> AttemptStatus:
        return self._status

    @property
    def result(self) -> SubmissionResult | None:
        return self._result

    @property
    def expired(self) -> bool:
        return self._countdown is not None and self._countdown.expired

    @property
    def time_remaining_seconds(self) -> int | None:
        if self._countdown is None:
            return None
        return self._countdown.remaining_seconds

    def get_answers(self) -> dict[int, AnswerValue]:
        with self._lock:
            return dict(self._answers)

    def start(self) -> None:
        with self._lock:
            if self._status is not AttemptStatus.NOT_STARTED:
                raise AttemptStateError("Attempt has already been started.")
            if self._quiz.is_past_deadline(self._clock()):
                raise DeadlinePassedError("The deadline for this quiz has passed.")
            self._status = AttemptStatus.IN_PROGRESS
            if self._countdown is not None:
                self._countdown.start(self._clock())

    def advance_clock(self) -> None:
        """Apply the countdown ticks elapsed since the attempt started."""
        with self._lock:
            if self._countdown is not None and self._status is AttemptStatus.IN_PROGRESS:
                self._countdown.advance_to(self._clock())

    def tick(self) -> None:
        with self._lock:
            if self._countdown is not None and self._status is AttemptStatus.IN_PROGRESS:
                self._countdown.tick()

    def is_locked(self) -> bool:
        with self._lock:
            if self._status is AttemptStatus.SUBMITTED:
                return True
            self.advance_clock()
            return self.expired or self._quiz.is_past_deadline(self._clock())

    def record_answer(self, question_index: int, value: object) -> bool:
        with self._lock:
            question = self._editable_question(question_index)
            if question is None:
                return False
            self._answers[question_index] = _coerce_answer(question, value, question_index)
            return True

    def toggle_selection(self, question_index: int, option: str) -> bool:
        """Add ``option`` to an MSQ selection, or remove it if already chosen."""
        with self._lock:
            question = self._editable_question(question_index)
            if question is None:
                return False
            if question.type is not QuestionType.MSQ:
                raise ValidationError(
                    f"Only MSQ selections can be toggled at question {question_index + 1}",
                    field="answers",
                )
            choice = option.strip()
            if choice not in (question.options or ()):
                raise ValidationError(
                    f"Selection not in options at question {question_index + 1}", field="answers"
                )
            current = frozenset(self._answers.get(question_index, frozenset()))
            self._answers[question_index] = current ^ {choice}
            return True

    def clear_answer(self, question_index: int) -> bool:
        with self._lock:
            if self._editable_question(question_index) is None:
                return False
            return self._answers.pop(question_index, None) is not None

    def submit(self) -> SubmissionResult:
        """Freeze, score and record the attempt exactly once."""
        with self._lock:
            if self._status is AttemptStatus.SUBMITTED:
                raise AlreadySubmittedError("Attempt has already been submitted.")
            if self._status is AttemptStatus.NOT_STARTED:
                raise AttemptStateError("Attempt has not been started.")
            now = self._clock()
            if self._quiz.is_past_deadline(now):
                raise DeadlinePassedError("The deadline for this quiz has passed.")
            self.advance_clock()
            if self._countdown is not None:
                self._countdown.cancel()
            self._status = AttemptStatus.SUBMITTED

            frozen_answers = dict(self._answers)
            percent = scorer.score(self._quiz.questions, frozen_answers)
            record = build_attempt_record(
                self._quiz,
                frozen_answers,
                self._submitter,
                percent,
                submitted_at=now,
                time_remaining_seconds=self.time_remaining_seconds,
            )
            result = SubmissionResult(record=record)
            try:
                self._recorder.record(record)
            except PersistenceError as exc:
                logger.warning("Attempt %s scored but not saved: %s", self.attempt_id, exc)
                result.persisted = False
                result.warnings.append(str(exc))
            self._result = result
            return result

    def cancel(self) -> None:
        """Stop the countdown when the owner of this attempt goes away."""
        with self._lock:
            if self._countdown is not None:
                self._countdown.cancel()

    def _editable_question(self, question_index: int) -> Question | None:
        if self._status is AttemptStatus.NOT_STARTED:
            raise AttemptStateError("Attempt has not been started.")
        if not 0 <= question_index < len(self._quiz.questions):
            raise ValidationError(f"Question index {question_index} out of range", field="answers")
        if self.is_locked():
            logger.info("Ignoring edit to locked attempt %s", self.attempt_id)
            return None
        return self._quiz.questions[question_index]


def _coerce_answer(question: Question, value: object, question_index: int) -> AnswerValue:
    position = question_index + 1
    if question.type is QuestionType.MSQ:
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise ValidationError(f"MSQ answer must be a list at question {position}", field="answers")
        selection = frozenset(str(item).strip() for item in value)
        if not selection.issubset(question.options or ()):
            raise ValidationError(f"Selection not in options at question {position}", field="answers")
        return selection

    if value is None or isinstance(value, (bool, set, frozenset, list, tuple, dict)):
        raise ValidationError(f"Answer must be text at question {position}", field="answers")
    text = str(value)
    if question.type is QuestionType.MCQ and text.strip() not in (question.options or ()):
        raise ValidationError(f"MCQ answer not in options at question {position}", field="answers")
    return text
