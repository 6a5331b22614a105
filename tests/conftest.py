from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from quizshare.core.quiz_manager import QuizManager
from quizshare.core.quiz_validator import validate_quiz
from quizshare.core.session import AuthenticatedUser

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeGenerator:
    def __init__(self, questions=None, error: Exception | None = None) -> None:
        self.questions = questions
        self.error = error
        self.calls: list[tuple[int, str, tuple[str, ...]]] = []

    def generate(self, num_questions, topic, types=("MCQ",)):
        self.calls.append((num_questions, topic, tuple(types)))
        if self.error is not None:
            raise self.error
        return self.questions


def make_quiz_payload(**overrides) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": "quiz-1",
        "ownerId": "owner-1",
        "topic": "Capitals",
        "questions": [
            {"type": "MCQ", "text": "Capital of France?", "options": ["Paris", "Lyon"], "answer": "Paris"},
            {"type": "MSQ", "text": "Pick the primes", "options": ["2", "4", "7"], "answer": ["2", "7"]},
            {"type": "short_answer", "text": "Largest ocean?", "answer": "Pacific"},
            {"type": "number", "text": "6 x 7?", "answer": 42},
        ],
        "timed": False,
        "shareEnabled": False,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def quiz_payload() -> dict[str, object]:
    return make_quiz_payload()


@pytest.fixture
def quiz(quiz_payload):
    return validate_quiz(quiz_payload)


@pytest.fixture
def owner() -> AuthenticatedUser:
    return AuthenticatedUser(user_id="owner-1", email="owner@example.com")


@pytest.fixture
def student() -> AuthenticatedUser:
    return AuthenticatedUser(user_id="student-1", email="student@example.com")


@pytest.fixture
def manager(clock) -> QuizManager:
    return QuizManager(generator=FakeGenerator(), clock=clock, share_base_url="https://quiz.example")
