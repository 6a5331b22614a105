"""Quiz generation through the OpenAI chat completions API.

The model is asked for a JSON list of ``{type, question, options, answer}``
objects. Its reply is parsed leniently (markdown fences and surrounding prose
are tolerated) but validated strictly: anything that does not pass quiz
validation is rejected instead of being repaired.
"""

from __future__ import annotations

from collections.abc import Sequence
import json
import logging
import os
import re
from typing import Any

from openai import OpenAI

from quizshare.constants.quiz_constants import (
    DEFAULT_LLM_MODEL,
    MAX_GENERATED_QUESTIONS,
    PLACEHOLDER_OPTIONS,
    PLACEHOLDER_QUESTION_TEMPLATE,
)
from quizshare.core.errors import GenerationFailedError, ValidationError
from quizshare.core.models import Question, QuestionType
from quizshare.core.question_types import normalize_question_type
from quizshare.core.quiz_validator import validate_questions

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a strict quiz generator.\n"
    "Output rules:\n"
    "- Output ONLY JSON (no markdown, no commentary outside JSON).\n"
    "- Return a JSON list with EXACTLY the requested number of questions.\n"
    "- Each item MUST have keys: ['type','question','options','answer'].\n"
    "- 'type' is one of: MCQ, MSQ, ShortAnswer, Numerical.\n"
    "- MCQ: 'options' is a list of strings and 'answer' is exactly one of them.\n"
    "- MSQ: 'options' is a list of strings and 'answer' is a list of the correct options.\n"
    "- ShortAnswer and Numerical: 'options' is null and 'answer' is a short string.\n"
)


class QuizGenerator:
    """Requests questions from a chat model and validates the reply."""

    def __init__(
        self,
        client: Any | None = None,
        model: str = DEFAULT_LLM_MODEL,
        api_key: str | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._api_key = api_key

    def _get_client(self) -> Any:
        if self._client is None:
            key = self._api_key or os.getenv("OPENAI_API_KEY", "")
            if not key:
                raise GenerationFailedError("OPENAI_API_KEY missing. Provide via env or settings.")
            self._client = OpenAI(api_key=key)
            logger.info("OpenAI client configured for model %s", self._model)
        return self._client

    def generate(
        self,
        num_questions: int,
        topic: str,
        types: Sequence[str] = ("MCQ",),
    ) -> tuple[Question, ...]:
        if not 1 <= num_questions <= MAX_GENERATED_QUESTIONS:
            raise ValidationError(
                f"Number of questions must be between 1 and {MAX_GENERATED_QUESTIONS}.",
                field="numQuestions",
            )
        if not topic.strip():
            raise ValidationError("Quiz topic must not be empty.", field="topic")
        requested_types = [normalize_question_type(t) for t in types] or [QuestionType.MCQ]

        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(num_questions, topic, requested_types)},
                ],
            )
            raw = response.choices[0].message.content or ""
        except Exception as exc:
            logger.error("Quiz generation request failed: %s", exc)
            raise GenerationFailedError(f"Quiz generation request failed: {exc}") from exc

        items = parse_generated_questions(raw)
        if len(items) > num_questions:
            logger.warning("Model returned %d questions, keeping %d", len(items), num_questions)
            items = items[:num_questions]
        elif len(items) < num_questions:
            logger.warning("Model returned %d of %d requested questions", len(items), num_questions)

        try:
            questions = validate_questions(items)
        except ValidationError as exc:
            raise GenerationFailedError(f"Generated quiz is malformed: {exc}") from exc
        logger.info("Generated %d questions on %r", len(questions), topic)
        return questions


def build_user_prompt(num_questions: int, topic: str, types: Sequence[QuestionType]) -> str:
    type_names = ", ".join(question_type.value for question_type in types)
    return (
        f"Create a {num_questions}-question quiz on the topic: {topic}. "
        f"Use only these question types: {type_names}. "
        "Format: [{type, question, options, answer}]"
    )


def parse_generated_questions(text: str) -> list[dict[str, Any]]:
    """Extract the question list from a model reply or raise ``GenerationFailedError``."""
    if not text or not text.strip():
        raise GenerationFailedError("Empty response from model.")

    cleaned = re.sub(r"^```(?:json)?|```$", "", text.strip(), flags=re.M).strip()
    candidates = [cleaned]
    start, end = cleaned.find("["), cleaned.rfind("]")
    if start != -1 and end > start:
        candidates.append(cleaned[start : end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and isinstance(data.get("questions"), list):
            data = data["questions"]
        if isinstance(data, list):
            if not data:
                raise GenerationFailedError("Model returned no questions.")
            if not all(isinstance(item, dict) for item in data):
                raise GenerationFailedError("Model returned questions in an unexpected shape.")
            return data

    raise GenerationFailedError(f"Invalid JSON from model: {text[:200]}")


def build_placeholder_questions(num_questions: int) -> tuple[Question, ...]:
    """Template quiz for manual authoring: numbered MCQs answered by the first option."""
    if not 1 <= num_questions <= MAX_GENERATED_QUESTIONS:
        raise ValidationError(
            f"Number of questions must be between 1 and {MAX_GENERATED_QUESTIONS}.",
            field="numQuestions",
        )
    return tuple(
        Question(
            type=QuestionType.MCQ,
            text=PLACEHOLDER_QUESTION_TEMPLATE.format(number=number),
            expected_answer=PLACEHOLDER_OPTIONS[0],
            options=PLACEHOLDER_OPTIONS,
        )
        for number in range(1, num_questions + 1)
    )
