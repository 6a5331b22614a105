"""Parses quiz questions from the human-friendly text format used for imports.

File format (repeat blocks separated by blank lines or '---'):

    TYPE: MCQ | MSQ | ShortAnswer | Numerical   (optional, defaults to MCQ)
    Q: Question text. Additional lines until the next marker are treated as
       part of the question.
    A: First option text          (MCQ/MSQ only, letters in order A, B, C...)
    B: Second option text
    CORRECT: B                    (MCQ: one letter, MSQ: comma-separated letters)
    ANSWER: 42                    (ShortAnswer/Numerical)

Example:

    TYPE: MSQ
    Q: Which of these are prime?
    A: 2
    B: 4
    C: 7
    CORRECT: A, C

Every parsed block goes through quiz validation, so an imported question
obeys the same rules as one typed in by hand or generated.
"""

from __future__ import annotations

import string

from quizshare.core.errors import ValidationError
from quizshare.core.models import Question, QuestionType
from quizshare.core.question_types import lookup_question_type
from quizshare.core.quiz_validator import validate_questions


class QuizImportError(ValidationError):
    """Raised when a quiz definition cannot be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, field="text")


_OPTION_LETTERS = string.ascii_uppercase


def parse_quiz_text(text: str) -> tuple[Question, ...]:
    blocks = _split_blocks(text)
    if not blocks:
        raise QuizImportError("Quiz text did not contain any questions.")
    payloads = [_parse_block(block) for block in blocks]
    try:
        return validate_questions(payloads)
    except ValidationError as exc:
        raise QuizImportError(str(exc)) from exc


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---" or not stripped:
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        current_block.append(raw_line)
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return blocks


def _parse_block(block: str) -> dict[str, object]:
    question_type = "MCQ"
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letters: list[str] | None = None
    answer: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        upper = line.upper()

        if upper.startswith("TYPE:"):
            question_type = line.split(":", 1)[1].strip()
            if lookup_question_type(question_type) is None:
                raise QuizImportError(f"Unknown question type '{question_type}'.")
            current_section = None
            continue

        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            raw_letters = line.split(":", 1)[1]
            correct_letters = [part.strip().upper() for part in raw_letters.split(",") if part.strip()]
            current_section = None
            continue

        if upper.startswith("ANSWER:"):
            answer = line.split(":", 1)[1].strip()
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in options:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(f"Encountered text outside of a known section: '{line}'.")

    if not question_lines:
        raise QuizImportError("Question text missing (Q: ...)")

    expected_letters = list(_OPTION_LETTERS[: len(options)])
    if sorted(options) != expected_letters:
        raise QuizImportError("Options must be lettered consecutively starting at A.")
    option_list = [options[letter].strip() for letter in expected_letters]

    payload: dict[str, object] = {
        "type": question_type,
        "text": "\n".join(question_lines).strip(),
    }
    if option_list:
        payload["options"] = option_list

    if correct_letters is not None:
        unknown = [letter for letter in correct_letters if letter not in options]
        if unknown:
            raise QuizImportError(f"CORRECT refers to undefined options: {', '.join(unknown)}.")
        chosen = [options[letter].strip() for letter in correct_letters]
        is_multi = lookup_question_type(question_type) is QuestionType.MSQ
        payload["answer"] = chosen if is_multi else (chosen[0] if len(chosen) == 1 else chosen)
    elif answer is not None:
        payload["answer"] = answer
    return payload
