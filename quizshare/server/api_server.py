"""FastAPI server exposing quiz authoring, sharing and attempt endpoints."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse
import httpx
from pydantic import BaseModel, ConfigDict, Field
import uvicorn

from quizshare.config import Settings
from quizshare.constants.about import APP_NAME, APP_VERSION
from quizshare.constants.network_constants import USER_EMAIL_HEADER, USER_ID_HEADER
from quizshare.core.captcha import verify_captcha
from quizshare.core.errors import (
    AttemptStateError,
    AuthenticationRequiredError,
    CaptchaError,
    DeadlinePassedError,
    GenerationFailedError,
    QuizShareError,
    ValidationError,
)
from quizshare.core.models import AttemptRecord, Quiz, SubmissionResult
from quizshare.core.quiz_manager import QuizManager
from quizshare.core.services.attempt_session import AttemptSession
from quizshare.core.session import AuthenticatedUser, UserSession

logger = logging.getLogger(__name__)

_ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (ValidationError, 422),
    (AuthenticationRequiredError, 401),
    (DeadlinePassedError, 403),
    (AttemptStateError, 409),
    (GenerationFailedError, 502),
    (LookupError, 404),
]


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class QuestionPayload(_Payload):
    type: str | None = None
    text: str | None = None
    question: str | None = None
    options: list[str] | None = None
    answer: str | int | float | list[str] | None = Field(default=None, alias="expectedAnswer")


class QuizSettingsPayload(_Payload):
    timed: bool = False
    timer_duration_minutes: float | None = Field(default=None, alias="timerDurationMinutes")
    deadline: datetime | None = None
    share_enabled: bool = Field(default=False, alias="shareEnabled")

    def settings(self) -> dict[str, object]:
        return {
            "timed": self.timed,
            "timerDurationMinutes": self.timer_duration_minutes,
            "deadline": self.deadline,
            "shareEnabled": self.share_enabled,
        }


class CreateQuizPayload(QuizSettingsPayload):
    topic: str
    questions: list[QuestionPayload]


class TemplateQuizPayload(QuizSettingsPayload):
    topic: str
    num_questions: int = Field(default=5, alias="numQuestions")


class GenerateQuizPayload(QuizSettingsPayload):
    topic: str
    num_questions: int = Field(default=5, alias="numQuestions")
    types: list[str] = Field(default_factory=lambda: ["MCQ"])


class ImportQuizPayload(QuizSettingsPayload):
    topic: str
    text: str


class SharePayload(_Payload):
    enabled: bool


class PublicAttemptPayload(_Payload):
    display_name: str | None = Field(default=None, alias="displayName")


class AnswerPayload(_Payload):
    value: str | int | float | list[str]


class TogglePayload(_Payload):
    option: str


class CaptchaPayload(_Payload):
    token: str | None = None


def _session_dependency(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    x_user_email: str | None = Header(default=None, alias=USER_EMAIL_HEADER),
) -> UserSession:
    if x_user_id and x_user_id.strip():
        return UserSession(AuthenticatedUser(user_id=x_user_id.strip(), email=x_user_email))
    return UserSession()


def _get_quiz_manager_dependency(quiz_manager: QuizManager) -> Callable[[], QuizManager]:
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _quiz_view(manager: QuizManager, quiz: Quiz, include_answers: bool = True) -> dict[str, object]:
    view = quiz.to_payload() if include_answers else quiz.public_payload()
    view["shareLink"] = manager.share_link(quiz.id) if quiz.share_enabled and quiz.id else None
    return view


def _attempt_view(session: AttemptSession) -> dict[str, object]:
    questions = session.quiz.questions
    answers: dict[str, object] = {}
    for index, value in sorted(session.get_answers().items()):
        if isinstance(value, frozenset):
            answers[str(index)] = questions[index].ordered_selection(value)
        else:
            answers[str(index)] = value
    return {
        "attemptId": session.attempt_id,
        "quizId": session.quiz.id,
        "quiz": session.quiz.public_payload(),
        "submitter": session.submitter.label,
        "status": session.status.value,
        "answers": answers,
        "timeRemainingSeconds": session.time_remaining_seconds,
        "expired": session.expired,
        "locked": session.is_locked(),
    }


def _submission_view(attempt_id: str, result: SubmissionResult) -> dict[str, object]:
    return {
        "attemptId": attempt_id,
        "scorePercent": result.score_percent,
        "persisted": result.persisted,
        "warnings": list(result.warnings),
        "record": result.record.to_document(),
    }


def _records_view(records: list[AttemptRecord]) -> list[dict[str, object]]:
    return [record.to_document() for record in records]


def create_api_app(
    quiz_manager: QuizManager,
    settings: Settings | None = None,
    captcha_client: httpx.Client | None = None,
) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    settings = settings or Settings()
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.exception_handler(QuizShareError)
    async def quiz_error_handler(request: Request, exc: QuizShareError) -> JSONResponse:
        status_code = next(
            (code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)), 400
        )
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        body: dict[str, object] = {"detail": str(exc)}
        if isinstance(exc, ValidationError) and exc.field:
            body["field"] = exc.field
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/api/verify-captcha")
    def verify_captcha_route(payload: CaptchaPayload) -> JSONResponse:
        if not payload.token:
            return JSONResponse(status_code=400, content={"success": False, "error": "Missing token"})
        try:
            success = verify_captcha(payload.token, settings.recaptcha_secret_key, client=captcha_client)
        except CaptchaError as exc:
            return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
        return JSONResponse(content={"success": success})

    # --- Authoring ---

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: CreateQuizPayload,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        user = session.require_user()
        document = payload.settings()
        document["topic"] = payload.topic
        document["questions"] = [
            question.model_dump(by_alias=True, exclude_none=True) for question in payload.questions
        ]
        return _quiz_view(manager, manager.create_quiz(user, document))

    @app.post("/quizzes/template", status_code=201)
    def create_template_quiz(
        payload: TemplateQuizPayload,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        user = session.require_user()
        quiz = manager.create_template_quiz(
            user, payload.topic, payload.num_questions, payload.settings()
        )
        return _quiz_view(manager, quiz)

    @app.post("/quizzes/generate", status_code=201)
    def generate_quiz(
        payload: GenerateQuizPayload,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        user = session.require_user()
        quiz = manager.generate_quiz(
            user, payload.topic, payload.num_questions, payload.types, payload.settings()
        )
        return _quiz_view(manager, quiz)

    @app.post("/quizzes/import", status_code=201)
    def import_quiz(
        payload: ImportQuizPayload,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        user = session.require_user()
        quiz = manager.import_quiz(user, payload.topic, payload.text, payload.settings())
        return _quiz_view(manager, quiz)

    @app.get("/quizzes/{quiz_id}/export", response_class=PlainTextResponse)
    def export_quiz(
        quiz_id: str,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> str:
        user = session.require_user()
        return manager.export_quiz(user, quiz_id)

    @app.get("/quizzes")
    def list_quizzes(
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        user = session.require_user()
        return [_quiz_view(manager, quiz) for quiz in manager.list_quizzes(user)]

    @app.get("/quizzes/{quiz_id}")
    def get_quiz(
        quiz_id: str,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        user = session.require_user()
        return _quiz_view(manager, manager.get_owned_quiz(user, quiz_id))

    @app.put("/quizzes/{quiz_id}/share")
    def set_share(
        quiz_id: str,
        payload: SharePayload,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        user = session.require_user()
        quiz = manager.set_share_enabled(user, quiz_id, payload.enabled)
        return _quiz_view(manager, quiz)

    # --- Attempts ---

    @app.post("/quizzes/{quiz_id}/attempts", status_code=201)
    def start_attempt(
        quiz_id: str,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        user = session.require_user()
        return _attempt_view(manager.start_attempt(user, quiz_id))

    @app.get("/public/quizzes/{quiz_id}")
    def get_public_quiz(
        quiz_id: str, manager: QuizManager = Depends(manager_dep)
    ) -> dict[str, object]:
        return _quiz_view(manager, manager.get_shared_quiz(quiz_id), include_answers=False)

    @app.post("/public/quizzes/{quiz_id}/attempts", status_code=201)
    def start_public_attempt(
        quiz_id: str,
        payload: PublicAttemptPayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _attempt_view(manager.start_public_attempt(quiz_id, payload.display_name))

    @app.get("/attempts/{attempt_id}")
    def get_attempt(
        attempt_id: str,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _attempt_view(manager.get_attempt(attempt_id, session.user))

    @app.put("/attempts/{attempt_id}/answers/{question_index}")
    def record_answer(
        attempt_id: str,
        question_index: int,
        payload: AnswerPayload,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        accepted = manager.record_answer(attempt_id, question_index, payload.value, session.user)
        view = _attempt_view(manager.get_attempt(attempt_id, session.user))
        view["accepted"] = accepted
        return view

    @app.post("/attempts/{attempt_id}/answers/{question_index}/toggle")
    def toggle_selection(
        attempt_id: str,
        question_index: int,
        payload: TogglePayload,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        accepted = manager.toggle_selection(attempt_id, question_index, payload.option, session.user)
        view = _attempt_view(manager.get_attempt(attempt_id, session.user))
        view["accepted"] = accepted
        return view

    @app.post("/attempts/{attempt_id}/submit")
    def submit_attempt(
        attempt_id: str,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        result = manager.submit_attempt(attempt_id, session.user)
        return _submission_view(attempt_id, result)

    @app.delete("/attempts/{attempt_id}", status_code=204)
    def discard_attempt(
        attempt_id: str,
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> None:
        manager.discard_attempt(attempt_id, session.user)

    # --- History ---

    @app.get("/attempts")
    def attempt_history(
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        return _records_view(manager.attempt_history(session.require_user()))

    @app.get("/public-attempts")
    def public_attempt_history(
        session: UserSession = Depends(_session_dependency),
        manager: QuizManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        return _records_view(manager.public_attempt_history(session.require_user()))

    return app


def run_api_server(quiz_manager: QuizManager, settings: Settings) -> None:
    """Serve the API with uvicorn until interrupted."""
    app = create_api_app(quiz_manager, settings)
    config = uvicorn.Config(
        app=app, host=settings.host, port=settings.port, log_level=settings.log_level.lower()
    )
    uvicorn.Server(config).run()
