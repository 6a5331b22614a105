"""Exception types raised by the quiz core."""

from __future__ import annotations


class QuizShareError(Exception):
    """Base class for errors surfaced to callers of the quiz core."""


class ValidationError(QuizShareError):
    """Raised when quiz or question data is malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class AttemptStateError(QuizShareError):
    """Raised when an attempt operation is invalid for its current state."""


class AlreadySubmittedError(AttemptStateError):
    """Raised when an attempt is submitted a second time."""


class DeadlinePassedError(QuizShareError):
    """Raised when a quiz is submitted or started after its deadline."""


class GenerationFailedError(QuizShareError):
    """Raised when the language model returns empty or unusable output."""


class PersistenceError(QuizShareError):
    """Raised when a record could not be written to storage."""


class QuizNotFoundError(QuizShareError, LookupError):
    pass


class AttemptNotFoundError(QuizShareError, LookupError):
    pass


class AuthenticationRequiredError(QuizShareError):
    pass


class CaptchaError(QuizShareError):
    """Raised when the captcha provider could not be reached."""
