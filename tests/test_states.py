"""Tests for the pure session transition function."""

import pytest

from cognitive_insight.session.errors import InvalidTransitionError
from cognitive_insight.session.states import (
    AnswerCaptured,
    AnswerRecorded,
    AskingQuestion,
    CollectingProfile,
    Completed,
    ErrorRaised,
    EvaluatingAnswer,
    Failed,
    Idle,
    ListeningForAnswer,
    PermissionDenied,
    PermissionGranted,
    PreparingTest,
    ProfileFieldCollected,
    ProfileStage,
    QuestionAsked,
    QuestionsLoaded,
    RequestingPermission,
    StartRequested,
    is_terminal,
    transition,
)


def test_happy_path_walks_every_state():
    state = Idle()
    state = transition(state, StartRequested())
    assert state == RequestingPermission()
    state = transition(state, PermissionGranted())
    assert state == CollectingProfile(ProfileStage.NAME)
    for stage in ProfileStage:
        state = transition(state, ProfileFieldCollected(stage))
    assert state == PreparingTest()

    state = transition(state, QuestionsLoaded(2))
    assert state == AskingQuestion(0)
    state = transition(state, QuestionAsked(0))
    assert state == ListeningForAnswer(0)
    state = transition(state, AnswerCaptured(0))
    assert state == EvaluatingAnswer(0)
    state = transition(state, AnswerRecorded(0, 2))
    assert state == AskingQuestion(1)

    state = transition(transition(state, QuestionAsked(1)), AnswerCaptured(1))
    state = transition(state, AnswerRecorded(1, 2))
    assert state == Completed()
    assert is_terminal(state)


def test_unanswered_question_skips_evaluation():
    state = transition(ListeningForAnswer(4), AnswerRecorded(4, 10))
    assert state == AskingQuestion(5)


def test_empty_question_set_completes_immediately():
    assert transition(PreparingTest(), QuestionsLoaded(0)) == Completed()


def test_permission_denied_fails_with_message():
    state = transition(RequestingPermission(), PermissionDenied("마이크 사용 권한이 필요합니다."))
    assert state == Failed("마이크 사용 권한이 필요합니다.")
    assert is_terminal(state)


@pytest.mark.parametrize(
    "state",
    [
        RequestingPermission(),
        CollectingProfile(ProfileStage.GENDER),
        AskingQuestion(3),
        EvaluatingAnswer(1),
        Completed(),
    ],
)
def test_error_fails_any_live_state(state):
    assert transition(state, ErrorRaised("boom")) == Failed("boom")


def test_failed_absorbs_events():
    failed = Failed("first")
    assert transition(failed, ErrorRaised("second")) is failed
    assert transition(failed, StartRequested()) is failed


@pytest.mark.parametrize(
    "state, event",
    [
        (Idle(), PermissionGranted()),
        (CollectingProfile(ProfileStage.NAME), ProfileFieldCollected(ProfileStage.GENDER)),
        (AskingQuestion(2), QuestionAsked(3)),
        (ListeningForAnswer(2), AnswerCaptured(1)),
        (EvaluatingAnswer(0), AnswerCaptured(0)),
        (Completed(), StartRequested()),
    ],
)
def test_mismatched_events_are_rejected(state, event):
    with pytest.raises(InvalidTransitionError):
        transition(state, event)


def test_profile_stages_run_in_order():
    assert ProfileStage.NAME.next() is ProfileStage.GENDER
    assert ProfileStage.GENDER.next() is ProfileStage.AGE_GROUP
    assert ProfileStage.AGE_GROUP.next() is None
