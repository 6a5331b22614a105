"""In-process document store for quizzes and attempt records."""

from __future__ import annotations

from collections import defaultdict
from copy import deepcopy
from dataclasses import replace
from threading import Lock
from uuid import uuid4

from quizshare.core.errors import QuizNotFoundError
from quizshare.core.models import AttemptRecord, Quiz
from quizshare.core.quiz_validator import validate_quiz


class QuizRepository:
    """Stores quiz documents and append-only attempt histories.

    Quizzes are kept as plain documents and re-validated on every read, so a
    document written by another client with odd type spellings is normalised
    at this boundary.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._quizzes: dict[str, dict[str, object]] = {}
        self._user_attempts: defaultdict[str, list[AttemptRecord]] = defaultdict(list)
        self._public_attempts: defaultdict[str, list[AttemptRecord]] = defaultdict(list)

    def add_quiz(self, quiz: Quiz) -> Quiz:
        """Insert ``quiz`` under a new identifier and return the stored copy."""
        stored = replace(quiz, id=uuid4().hex)
        with self._lock:
            self._quizzes[stored.id] = stored.to_payload()
        return stored

    def put_document(self, quiz_id: str, document: dict[str, object]) -> None:
        """Store a raw quiz document as another client would have written it."""
        with self._lock:
            self._quizzes[quiz_id] = deepcopy({**document, "id": quiz_id})

    def get_quiz(self, quiz_id: str) -> Quiz:
        with self._lock:
            document = self._quizzes.get(quiz_id)
            if document is None:
                raise QuizNotFoundError(f"Quiz {quiz_id} not found")
            document = deepcopy(document)
        return validate_quiz(document)

    def list_quizzes(self, owner_id: str) -> list[Quiz]:
        with self._lock:
            documents = [
                deepcopy(document)
                for document in self._quizzes.values()
                if document.get("ownerId") == owner_id
            ]
        return [validate_quiz(document) for document in documents]

    def set_share_enabled(self, quiz_id: str, enabled: bool) -> Quiz:
        with self._lock:
            document = self._quizzes.get(quiz_id)
            if document is None:
                raise QuizNotFoundError(f"Quiz {quiz_id} not found")
            document["shareEnabled"] = enabled
        return self.get_quiz(quiz_id)

    def append_user_attempt(self, user_id: str, record: AttemptRecord) -> None:
        with self._lock:
            self._user_attempts[user_id].append(record)

    def append_public_attempt(self, owner_id: str, record: AttemptRecord) -> None:
        with self._lock:
            self._public_attempts[owner_id].append(record)

    def list_user_attempts(self, user_id: str) -> list[AttemptRecord]:
        """Return a user's attempts, newest first."""
        with self._lock:
            records = list(self._user_attempts.get(user_id, ()))
        return sorted(records, key=lambda record: record.submitted_at, reverse=True)

    def list_public_attempts(self, owner_id: str) -> list[AttemptRecord]:
        with self._lock:
            records = list(self._public_attempts.get(owner_id, ()))
        return sorted(records, key=lambda record: record.submitted_at, reverse=True)
