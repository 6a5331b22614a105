"""Renders quizzes in the plain-text format read by ``quiz_importer``."""

from __future__ import annotations

from collections.abc import Sequence
import string

from quizshare.core.models import Question

_OPTION_LETTERS = string.ascii_uppercase


def serialize_questions(questions: Sequence[Question]) -> str:
    if not questions:
        raise ValueError("Cannot export an empty quiz.")
    blocks = [_serialize_question(question) for question in questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_question(question: Question) -> str:
    lines = [f"TYPE: {question.type.value}"]

    question_lines = question.text.splitlines() or [question.text]
    lines.append(f"Q: {question_lines[0]}")
    lines.extend(question_lines[1:])

    options = list(question.options or ())
    for letter, option_text in zip(_OPTION_LETTERS, options):
        option_lines = option_text.splitlines() or [option_text]
        lines.append(f"{letter}: {option_lines[0]}")
        lines.extend(option_lines[1:])

    if isinstance(question.expected_answer, frozenset):
        chosen = question.ordered_selection(question.expected_answer)
        letters = [_OPTION_LETTERS[options.index(option)] for option in chosen]
        lines.append(f"CORRECT: {', '.join(letters)}")
    elif options:
        lines.append(f"CORRECT: {_OPTION_LETTERS[options.index(question.expected_answer)]}")
    else:
        lines.append(f"ANSWER: {question.expected_answer}")

    return "\n".join(lines)
