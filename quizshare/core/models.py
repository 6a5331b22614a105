"""Domain models for the quiz service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import math

AnswerValue = str | frozenset[str]


class QuestionType(Enum):
    """Closed set of supported question types."""

    MCQ = "MCQ"
    MSQ = "MSQ"
    SHORT_ANSWER = "ShortAnswer"
    NUMERICAL = "Numerical"

    @property
    def has_options(self) -> bool:
        return self in (QuestionType.MCQ, QuestionType.MSQ)


class AttemptStatus(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


@dataclass(slots=True, frozen=True)
class Question:
    """A single prompt with its expected answer.

    ``expected_answer`` is a string for every type except MSQ, where it is the
    order-independent set of correct options.
    """

    type: QuestionType
    text: str
    expected_answer: AnswerValue
    options: tuple[str, ...] | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"type": self.type.value, "text": self.text}
        if self.options is not None:
            payload["options"] = list(self.options)
        if isinstance(self.expected_answer, frozenset):
            payload["expectedAnswer"] = self.ordered_selection(self.expected_answer)
        else:
            payload["expectedAnswer"] = self.expected_answer
        return payload

    def public_payload(self) -> dict[str, object]:
        """Payload safe to show to someone attempting the quiz."""
        payload = self.to_payload()
        payload.pop("expectedAnswer")
        return payload

    def ordered_selection(self, selection: frozenset[str]) -> list[str]:
        """Return ``selection`` in option order, unknown entries last."""
        options = list(self.options or ())
        return sorted(
            selection,
            key=lambda item: (options.index(item) if item in options else len(options), item),
        )


@dataclass(slots=True, frozen=True)
class Quiz:
    """A validated quiz. Question order defines the answer keys."""

    id: str | None
    owner_id: str
    topic: str
    questions: tuple[Question, ...]
    timed: bool = False
    timer_duration_minutes: float | None = None
    deadline: datetime | None = None
    share_enabled: bool = False

    @property
    def timer_duration_seconds(self) -> int | None:
        if not self.timed or self.timer_duration_minutes is None:
            return None
        # Any positive duration runs for at least one tick.
        return max(1, math.ceil(round(self.timer_duration_minutes * 60, 6)))

    def is_past_deadline(self, now: datetime) -> bool:
        return self.deadline is not None and now > self.deadline

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "topic": self.topic,
            "questions": [question.to_payload() for question in self.questions],
            "timed": self.timed,
            "timerDurationMinutes": self.timer_duration_minutes,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "shareEnabled": self.share_enabled,
        }

    def public_payload(self) -> dict[str, object]:
        payload = self.to_payload()
        payload["questions"] = [question.public_payload() for question in self.questions]
        return payload


@dataclass(slots=True, frozen=True)
class SubmitterIdentity:
    """Who submitted an attempt: a signed-in user or an anonymous display name."""

    user_id: str | None = None
    email: str | None = None
    display_name: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def label(self) -> str:
        if self.is_authenticated:
            return self.email or self.user_id or ""
        return self.display_name or ""


@dataclass(slots=True, frozen=True)
class AttemptResponse:
    question: str
    answer: str | list[str] | None


@dataclass(slots=True, frozen=True)
class AttemptRecord:
    """Immutable attempt handed to storage after submission."""

    quiz_id: str | None
    quiz_topic: str
    submitter: SubmitterIdentity
    score_percent: int
    responses: tuple[AttemptResponse, ...]
    submitted_at: datetime
    time_remaining_seconds: int | None = None

    def to_document(self) -> dict[str, object]:
        document: dict[str, object] = {
            "quizId": self.quiz_id,
            "quizTopic": self.quiz_topic,
            "submitterIdentity": self.submitter.label,
            "scorePercent": self.score_percent,
            "responses": [
                {"question": response.question, "answer": response.answer}
                for response in self.responses
            ],
            "submittedAt": self.submitted_at.isoformat(),
        }
        if self.submitter.is_authenticated:
            document["userId"] = self.submitter.user_id
        if self.time_remaining_seconds is not None:
            document["timeRemainingSeconds"] = self.time_remaining_seconds
        return document


@dataclass(slots=True)
class SubmissionResult:
    """Outcome of a submit: the record plus whether storage accepted it."""

    record: AttemptRecord
    persisted: bool = True
    warnings: list[str] = field(default_factory=list)

    @property
    def score_percent(self) -> int:
        return self.record.score_percent
