from datetime import datetime, timezone

import pytest

from conftest import make_quiz_payload
from quizshare.core.errors import ValidationError
from quizshare.core.models import QuestionType
from quizshare.core.quiz_validator import parse_deadline, validate_questions, validate_quiz


def test_valid_payload_is_normalized(quiz_payload):
    quiz = validate_quiz(quiz_payload)

    assert quiz.owner_id == "owner-1"
    assert [q.type for q in quiz.questions] == [
        QuestionType.MCQ,
        QuestionType.MSQ,
        QuestionType.SHORT_ANSWER,
        QuestionType.NUMERICAL,
    ]
    assert quiz.questions[1].expected_answer == frozenset({"2", "7"})
    assert quiz.questions[3].expected_answer == "42"
    assert quiz.questions[2].options is None


def test_validation_does_not_mutate_input(quiz_payload):
    snapshot = make_quiz_payload()
    validate_quiz(quiz_payload)
    assert quiz_payload == snapshot


def test_revalidating_a_validated_quiz_is_accepted_unchanged(quiz_payload):
    quiz = validate_quiz(
        {**quiz_payload, "timed": True, "timerDurationMinutes": 5, "deadline": "2026-04-01T10:00:00Z"}
    )
    assert validate_quiz(quiz) == quiz
    assert validate_quiz(quiz.to_payload()) == quiz


def test_empty_question_list_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        validate_quiz(make_quiz_payload(questions=[]))
    assert excinfo.value.field == "questions"


def test_mcq_answer_must_be_an_option():
    questions = [
        {"type": "MCQ", "text": "a", "options": ["A", "B"], "answer": "A"},
        {"type": "MCQ", "text": "b", "options": ["A", "B"], "answer": "A"},
        {"type": "MCQ", "text": "c", "options": ["A", "B"], "answer": "C"},
    ]
    with pytest.raises(ValidationError, match="MCQ answer not in options at question 3"):
        validate_questions(questions)


def test_msq_answers_must_all_be_options():
    with pytest.raises(ValidationError, match="MSQ answer not in options"):
        validate_questions([{"type": "MSQ", "text": "x", "options": ["A", "B"], "answer": ["A", "Z"]}])


def test_msq_needs_at_least_one_correct_option():
    with pytest.raises(ValidationError, match="MSQ answer missing at question 1") as excinfo:
        validate_questions([{"type": "MSQ", "text": "x", "options": ["A", "B"], "answer": []}])
    assert excinfo.value.field == "expectedAnswer"


def test_msq_answer_given_as_string_is_rejected():
    with pytest.raises(ValidationError, match="list of options"):
        validate_questions([{"type": "MSQ", "text": "x", "options": ["A", "B"], "answer": "A"}])


def test_options_required_for_choice_questions():
    with pytest.raises(ValidationError, match="options missing"):
        validate_questions([{"type": "MCQ", "text": "x", "answer": "A"}])


def test_options_not_allowed_for_short_answer():
    with pytest.raises(ValidationError) as excinfo:
        validate_questions([{"type": "ShortAnswer", "text": "x", "options": ["A"], "answer": "A"}])
    assert excinfo.value.field == "options"


def test_unknown_type_fails_validation():
    with pytest.raises(ValidationError, match="Unknown question type"):
        validate_questions([{"type": "essay", "text": "x", "answer": "y"}])


def test_question_text_is_required():
    with pytest.raises(ValidationError) as excinfo:
        validate_questions([{"type": "ShortAnswer", "answer": "y"}])
    assert excinfo.value.field == "text"


def test_timed_quiz_requires_positive_duration(quiz_payload):
    with pytest.raises(ValidationError) as excinfo:
        validate_quiz({**quiz_payload, "timed": True})
    assert excinfo.value.field == "timerDurationMinutes"

    with pytest.raises(ValidationError):
        validate_quiz({**quiz_payload, "timed": True, "timerDurationMinutes": 0})


def test_missing_topic_and_owner_are_named(quiz_payload):
    with pytest.raises(ValidationError) as excinfo:
        validate_quiz({**quiz_payload, "topic": "  "})
    assert excinfo.value.field == "topic"

    with pytest.raises(ValidationError) as excinfo:
        validate_quiz({**quiz_payload, "ownerId": None})
    assert excinfo.value.field == "ownerId"


def test_llm_shaped_questions_are_accepted():
    questions = validate_questions(
        [{"type": "mcq", "question": "2 + 2?", "options": ["3", "4"], "answer": "4"}]
    )
    assert questions[0].text == "2 + 2?"
    assert questions[0].expected_answer == "4"


@pytest.mark.parametrize(
    "raw",
    [
        "2026-04-01T10:00:00Z",
        "2026-04-01T10:00:00",
        "2026-04-01T12:00:00+02:00",
        datetime(2026, 4, 1, 10, 0),
        1775037600000,
    ],
)
def test_deadline_formats_parse_to_utc(raw):
    assert parse_deadline(raw) == datetime(2026, 4, 1, 10, 0, tzinfo=timezone.utc)


def test_bad_deadline_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        parse_deadline("next tuesday")
    assert excinfo.value.field == "deadline"
