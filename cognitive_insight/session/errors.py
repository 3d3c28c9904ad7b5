"""Errors that end, or are absorbed by, an interview session."""

from __future__ import annotations


class SessionError(RuntimeError):
    """Base class for session-level failures."""


class PermissionDeniedError(SessionError):
    """Raised when microphone access is refused by the platform."""


class ProfileCollectionExhausted(SessionError):
    """Raised when a profile field could not be captured within the retry budget."""

    def __init__(self, field: str, attempts: int) -> None:
        super().__init__(f"Profile field '{field}' not captured after {attempts} attempts.")
        self.field = field
        self.attempts = attempts


class QuestionAnswerExhausted(SessionError):
    """An answer could not be captured; recorded as a zero-score answer."""

    def __init__(self, question_id: int, attempts: int) -> None:
        super().__init__(f"No answer for question {question_id} after {attempts} attempts.")
        self.question_id = question_id
        self.attempts = attempts


class EvaluatorFailure(SessionError):
    """The evaluator could not score an answer; recorded as a zero score."""


class SpeechUnsupportedError(SessionError):
    """Raised when speech synthesis or recognition is unavailable on this host."""


class InvalidTransitionError(SessionError):
    """Raised when an event is dispatched in a state that does not accept it."""

    def __init__(self, state: object, event: object) -> None:
        super().__init__(
            f"{type(event).__name__} is not valid in state {type(state).__name__}."
        )
        self.state = state
        self.event = event


class AnswerOrderError(SessionError):
    """Raised when an answer would break the one-answer-per-question ordering."""


__all__ = [
    "AnswerOrderError",
    "EvaluatorFailure",
    "InvalidTransitionError",
    "PermissionDeniedError",
    "ProfileCollectionExhausted",
    "QuestionAnswerExhausted",
    "SessionError",
    "SpeechUnsupportedError",
]
