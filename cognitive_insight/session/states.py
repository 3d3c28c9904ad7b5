"""Session states, the events that move between them, and the transition function.

Every state is an immutable value; ``transition`` is a pure function of
``(state, event)`` so the whole interview flow can be exercised without any
audio device. The controller owns the I/O and reports what happened through
events.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import InvalidTransitionError


class ProfileStage(str, Enum):
    NAME = "name"
    GENDER = "gender"
    AGE_GROUP = "age_group"

    def next(self) -> "ProfileStage | None":
        order = list(ProfileStage)
        position = order.index(self)
        return order[position + 1] if position + 1 < len(order) else None


# States


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class RequestingPermission:
    pass


@dataclass(frozen=True)
class CollectingProfile:
    stage: ProfileStage = ProfileStage.NAME


@dataclass(frozen=True)
class PreparingTest:
    pass


@dataclass(frozen=True)
class AskingQuestion:
    index: int


@dataclass(frozen=True)
class ListeningForAnswer:
    index: int


@dataclass(frozen=True)
class EvaluatingAnswer:
    index: int


@dataclass(frozen=True)
class Completed:
    pass


@dataclass(frozen=True)
class Failed:
    message: str


SessionState = Union[
    Idle,
    RequestingPermission,
    CollectingProfile,
    PreparingTest,
    AskingQuestion,
    ListeningForAnswer,
    EvaluatingAnswer,
    Completed,
    Failed,
]


def state_name(state: SessionState) -> str:
    return type(state).__name__


def is_terminal(state: SessionState) -> bool:
    return isinstance(state, (Completed, Failed))


# Events


@dataclass(frozen=True)
class StartRequested:
    pass


@dataclass(frozen=True)
class PermissionGranted:
    pass


@dataclass(frozen=True)
class PermissionDenied:
    message: str


@dataclass(frozen=True)
class ProfileFieldCollected:
    stage: ProfileStage


@dataclass(frozen=True)
class QuestionsLoaded:
    total: int


@dataclass(frozen=True)
class QuestionAsked:
    index: int


@dataclass(frozen=True)
class AnswerCaptured:
    index: int


@dataclass(frozen=True)
class AnswerRecorded:
    """An answer (scored or "no answer") was appended for question ``index``."""

    index: int
    total: int


@dataclass(frozen=True)
class ErrorRaised:
    message: str


SessionEvent = Union[
    StartRequested,
    PermissionGranted,
    PermissionDenied,
    ProfileFieldCollected,
    QuestionsLoaded,
    QuestionAsked,
    AnswerCaptured,
    AnswerRecorded,
    ErrorRaised,
]


def _after_answer(index: int, total: int) -> SessionState:
    if index + 1 < total:
        return AskingQuestion(index + 1)
    return Completed()


def transition(state: SessionState, event: SessionEvent) -> SessionState:
    """Return the state that follows ``state`` once ``event`` has happened.

    ``Failed`` absorbs every event. ``ErrorRaised`` fails any other state,
    including ``Completed`` when the completion work itself breaks. Any other
    pairing not listed below raises :class:`InvalidTransitionError`.
    """

    if isinstance(state, Failed):
        return state
    if isinstance(event, ErrorRaised):
        return Failed(event.message)

    if isinstance(state, Idle) and isinstance(event, StartRequested):
        return RequestingPermission()

    if isinstance(state, RequestingPermission):
        if isinstance(event, PermissionGranted):
            return CollectingProfile(ProfileStage.NAME)
        if isinstance(event, PermissionDenied):
            return Failed(event.message)

    if (
        isinstance(state, CollectingProfile)
        and isinstance(event, ProfileFieldCollected)
        and event.stage == state.stage
    ):
        following = state.stage.next()
        return CollectingProfile(following) if following else PreparingTest()

    if isinstance(state, PreparingTest) and isinstance(event, QuestionsLoaded):
        return AskingQuestion(0) if event.total > 0 else Completed()

    if (
        isinstance(state, AskingQuestion)
        and isinstance(event, QuestionAsked)
        and event.index == state.index
    ):
        return ListeningForAnswer(state.index)

    if isinstance(state, ListeningForAnswer) and getattr(event, "index", None) == state.index:
        if isinstance(event, AnswerCaptured):
            return EvaluatingAnswer(state.index)
        # Retries exhausted: the "no answer" record skips evaluation.
        if isinstance(event, AnswerRecorded):
            return _after_answer(event.index, event.total)

    if (
        isinstance(state, EvaluatingAnswer)
        and isinstance(event, AnswerRecorded)
        and event.index == state.index
    ):
        return _after_answer(event.index, event.total)

    raise InvalidTransitionError(state, event)


__all__ = [
    "AnswerCaptured",
    "AnswerRecorded",
    "AskingQuestion",
    "CollectingProfile",
    "Completed",
    "ErrorRaised",
    "EvaluatingAnswer",
    "Failed",
    "Idle",
    "ListeningForAnswer",
    "PermissionDenied",
    "PermissionGranted",
    "PreparingTest",
    "ProfileFieldCollected",
    "ProfileStage",
    "QuestionAsked",
    "QuestionsLoaded",
    "RequestingPermission",
    "SessionEvent",
    "SessionState",
    "StartRequested",
    "is_terminal",
    "state_name",
    "transition",
]
