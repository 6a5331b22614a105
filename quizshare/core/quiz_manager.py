"""Business logic tying quizzes, attempts and storage together for the API."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Mapping, Sequence
import logging
from threading import Lock

from quizshare.constants.network_constants import DEFAULT_SHARE_BASE_URL
from quizshare.constants.quiz_constants import MAX_FINISHED_ATTEMPTS
from quizshare.core.errors import (
    AlreadySubmittedError,
    AttemptNotFoundError,
    QuizNotFoundError,
)
from quizshare.core.models import AttemptRecord, Question, Quiz, SubmissionResult, SubmitterIdentity
from quizshare.core.name_assigner import NameAssigner
from quizshare.core.quiz_generator import QuizGenerator, build_placeholder_questions
from quizshare.core.quiz_exporter import serialize_questions
from quizshare.core.quiz_importer import parse_quiz_text
from quizshare.core.quiz_validator import validate_quiz
from quizshare.core.services.attempt_recorder import AttemptRecorder
from quizshare.core.services.attempt_session import AttemptSession, Clock, utc_now
from quizshare.core.services.quiz_repository import QuizRepository
from quizshare.core.session import AuthenticatedUser

logger = logging.getLogger(__name__)


class QuizManager:
    """Facade over the repository, generator and live attempt sessions."""

    def __init__(
        self,
        repository: QuizRepository | None = None,
        generator: QuizGenerator | None = None,
        share_base_url: str = DEFAULT_SHARE_BASE_URL,
        clock: Clock = utc_now,
        name_assigner: NameAssigner | None = None,
        max_finished_attempts: int = MAX_FINISHED_ATTEMPTS,
    ) -> None:
        self._lock = Lock()
        self._repository = repository or QuizRepository()
        self._generator = generator or QuizGenerator()
        self._share_base_url = share_base_url.rstrip("/")
        self._clock = clock
        self._names = name_assigner or NameAssigner.default()
        self._attempts: dict[str, AttemptSession] = {}
        self._finished: OrderedDict[str, AttemptSession] = OrderedDict()
        self._max_finished = max_finished_attempts

    @property
    def repository(self) -> QuizRepository:
        return self._repository

    @property
    def active_attempt_count(self) -> int:
        with self._lock:
            return len(self._attempts)

    # --- Authoring ---

    def create_quiz(self, user: AuthenticatedUser, payload: Mapping[str, object]) -> Quiz:
        candidate = {**payload, "id": None, "ownerId": user.user_id}
        quiz = self._repository.add_quiz(validate_quiz(candidate))
        logger.info("User %s created quiz %s (%d questions)", user.user_id, quiz.id, len(quiz.questions))
        return quiz

    def create_template_quiz(
        self,
        user: AuthenticatedUser,
        topic: str,
        num_questions: int,
        settings: Mapping[str, object] | None = None,
    ) -> Quiz:
        """Save a placeholder quiz the author then edits by hand."""
        questions = build_placeholder_questions(num_questions)
        return self._create_from_questions(user, topic, questions, settings)

    def generate_quiz(
        self,
        user: AuthenticatedUser,
        topic: str,
        num_questions: int,
        types: Sequence[str] = ("MCQ",),
        settings: Mapping[str, object] | None = None,
    ) -> Quiz:
        """Generate questions with the language model and save them as a quiz.

        Nothing is stored when generation fails.
        """
        questions = self._generator.generate(num_questions, topic, types)
        return self._create_from_questions(user, topic, questions, settings)

    def import_quiz(
        self,
        user: AuthenticatedUser,
        topic: str,
        text: str,
        settings: Mapping[str, object] | None = None,
    ) -> Quiz:
        """Create a quiz from questions written in the plain-text import format."""
        questions = parse_quiz_text(text)
        return self._create_from_questions(user, topic, questions, settings)

    def export_quiz(self, user: AuthenticatedUser, quiz_id: str) -> str:
        return serialize_questions(self.get_owned_quiz(user, quiz_id).questions)

    def _create_from_questions(
        self,
        user: AuthenticatedUser,
        topic: str,
        questions: Sequence[Question],
        settings: Mapping[str, object] | None,
    ) -> Quiz:
        payload = dict(settings or {})
        payload["topic"] = topic
        payload["questions"] = [question.to_payload() for question in questions]
        return self.create_quiz(user, payload)

    def list_quizzes(self, user: AuthenticatedUser) -> list[Quiz]:
        return self._repository.list_quizzes(user.user_id)

    def get_owned_quiz(self, user: AuthenticatedUser, quiz_id: str) -> Quiz:
        quiz = self._repository.get_quiz(quiz_id)
        if quiz.owner_id != user.user_id:
            raise QuizNotFoundError(f"Quiz {quiz_id} not found")
        return quiz

    # --- Sharing ---

    def set_share_enabled(self, user: AuthenticatedUser, quiz_id: str, enabled: bool) -> Quiz:
        self.get_owned_quiz(user, quiz_id)
        return self._repository.set_share_enabled(quiz_id, enabled)

    def share_link(self, quiz_id: str) -> str:
        return f"{self._share_base_url}/quiz/{quiz_id}"

    def get_shared_quiz(self, quiz_id: str) -> Quiz:
        quiz = self._repository.get_quiz(quiz_id)
        if not quiz.share_enabled:
            raise QuizNotFoundError(f"Quiz {quiz_id} not found")
        return quiz

    # --- Attempts ---

    def start_attempt(self, user: AuthenticatedUser, quiz_id: str) -> AttemptSession:
        quiz = self._repository.get_quiz(quiz_id)
        if quiz.owner_id != user.user_id and not quiz.share_enabled:
            raise QuizNotFoundError(f"Quiz {quiz_id} not found")
        recorder = AttemptRecorder(
            lambda record: self._repository.append_user_attempt(user.user_id, record)
        )
        return self._start_session(quiz, user.as_submitter(), recorder)

    def start_public_attempt(self, quiz_id: str, display_name: str | None) -> AttemptSession:
        quiz = self.get_shared_quiz(quiz_id)
        name = (display_name or "").strip() or self._names.next_name()
        recorder = AttemptRecorder(
            lambda record: self._repository.append_public_attempt(quiz.owner_id, record)
        )
        return self._start_session(quiz, SubmitterIdentity(display_name=name), recorder)

    def _start_session(
        self, quiz: Quiz, submitter: SubmitterIdentity, recorder: AttemptRecorder
    ) -> AttemptSession:
        session = AttemptSession(quiz, submitter, recorder, clock=self._clock)
        session.start()
        with self._lock:
            self._attempts[session.attempt_id] = session
        logger.info("Started attempt %s on quiz %s for %s", session.attempt_id, quiz.id, submitter.label)
        return session

    def get_attempt(self, attempt_id: str, caller: AuthenticatedUser | None = None) -> AttemptSession:
        with self._lock:
            session = self._attempts.get(attempt_id) or self._finished.get(attempt_id)
        if session is None:
            raise AttemptNotFoundError(f"Attempt {attempt_id} not found")
        owner = session.submitter.user_id
        if owner is not None and (caller is None or caller.user_id != owner):
            raise AttemptNotFoundError(f"Attempt {attempt_id} not found")
        session.advance_clock()
        return session

    def record_answer(
        self,
        attempt_id: str,
        question_index: int,
        value: object,
        caller: AuthenticatedUser | None = None,
    ) -> bool:
        return self.get_attempt(attempt_id, caller).record_answer(question_index, value)

    def toggle_selection(
        self,
        attempt_id: str,
        question_index: int,
        option: str,
        caller: AuthenticatedUser | None = None,
    ) -> bool:
        return self.get_attempt(attempt_id, caller).toggle_selection(question_index, option)

    def submit_attempt(
        self, attempt_id: str, caller: AuthenticatedUser | None = None
    ) -> SubmissionResult:
        """Submit an attempt; a repeated submit returns the first result."""
        session = self.get_attempt(attempt_id, caller)
        try:
            result = session.submit()
        except AlreadySubmittedError:
            logger.info("Duplicate submit for attempt %s ignored", attempt_id)
            if session.result is None:
                raise
            return session.result
        self._retire(session)
        return result

    def _retire(self, session: AttemptSession) -> None:
        """Move a submitted attempt out of the live registry.

        Only the most recent ``max_finished_attempts`` submitted attempts stay
        reachable, so repeated submits and late reads still see their result.
        """
        with self._lock:
            self._attempts.pop(session.attempt_id, None)
            self._finished[session.attempt_id] = session
            while len(self._finished) > self._max_finished:
                self._finished.popitem(last=False)

    def discard_attempt(self, attempt_id: str, caller: AuthenticatedUser | None = None) -> None:
        session = self.get_attempt(attempt_id, caller)
        session.cancel()
        with self._lock:
            self._attempts.pop(attempt_id, None)
            self._finished.pop(attempt_id, None)

    # --- History ---

    def attempt_history(self, user: AuthenticatedUser) -> list[AttemptRecord]:
        return self._repository.list_user_attempts(user.user_id)

    def public_attempt_history(self, user: AuthenticatedUser) -> list[AttemptRecord]:
        return self._repository.list_public_attempts(user.user_id)
