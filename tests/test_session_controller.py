"""End-to-end interview flows driven through scripted speech."""

import asyncio

import pytest

from cognitive_insight.config.settings import SessionConfig
from cognitive_insight.domain.models import NO_ANSWER, AgeGroup, Gender
from cognitive_insight.services.speech import ListenTimeoutError, PlatformSpeechError
from cognitive_insight.session import prompts
from cognitive_insight.session.controller import SessionController
from cognitive_insight.session.errors import SpeechUnsupportedError
from cognitive_insight.session.states import Completed, Failed

from fakes import (
    FIXED_NOW,
    FakePermission,
    HangingSpeech,
    InMemoryResultRepository,
    KeywordEvaluator,
    RecordingObserver,
    ScriptedSpeech,
    StaticQuestionBank,
    correct_answers,
    make_questions,
    no_sleep,
)

PROFILE = ["홍길동", "남자", "70대"]


def _controller(speech, *, questions=10, granted=True, evaluator=None, repository=None, observer=None):
    return SessionController(
        speech=speech,
        permission=FakePermission(granted),
        question_bank=StaticQuestionBank(make_questions(questions)),
        evaluator=evaluator or KeywordEvaluator(),
        repository=repository if repository is not None else InMemoryResultRepository(),
        config=SessionConfig(post_prompt_pause_seconds=0),
        session_id="test-session",
        observer=observer,
        clock=lambda: FIXED_NOW,
        sleep=no_sleep,
    )


def test_complete_session_saves_result():
    speech = ScriptedSpeech(PROFILE + correct_answers(10))
    repository = InMemoryResultRepository()
    controller = _controller(speech, repository=repository)

    final = asyncio.run(controller.run())

    assert final == Completed()
    assert len(repository.results) == 1
    result = repository.results[0]
    assert result is controller.result
    assert result.user_profile.name == "홍길동"
    assert result.user_profile.gender is Gender.MALE
    assert result.user_profile.age_group is AgeGroup.SEVENTIES_PLUS
    assert [a.question_id for a in result.answers] == list(range(1, 11))
    assert result.total_score == 10
    assert result.created_at == FIXED_NOW
    assert speech.spoken[-1] == prompts.closing(10)
    assert prompts.welcome("홍길동", 10) in speech.spoken
    assert speech.closed


def test_profile_exhaustion_fails_without_saving():
    speech = ScriptedSpeech([ListenTimeoutError("t")] * 3)
    repository = InMemoryResultRepository()
    controller = _controller(speech, repository=repository)

    final = asyncio.run(controller.run())

    assert final == Failed(prompts.PROFILE_EXHAUSTED)
    assert repository.results == []
    assert controller.result is None
    assert len(speech.listen_calls) == 3
    assert speech.spoken[-1] == prompts.failure(prompts.PROFILE_EXHAUSTED)


def test_unanswered_question_is_recorded_and_session_moves_on():
    script = PROFILE + correct_answers(4) + [ListenTimeoutError("t")] * 3 + correct_answers(10)[5:]
    speech = ScriptedSpeech(script)
    evaluator = KeywordEvaluator()
    controller = _controller(speech, evaluator=evaluator)

    final = asyncio.run(controller.run())

    assert final == Completed()
    answers = controller.result.answers
    assert len(answers) == 10
    skipped = answers[4]
    assert skipped.question_id == 5
    assert skipped.transcript == NO_ANSWER
    assert skipped.score == 0
    assert skipped.explanation == prompts.NO_ANSWER_EXPLANATION
    assert answers[5].question_id == 6
    assert 5 not in [question_id for question_id, _ in evaluator.seen]
    assert controller.result.total_score == 9

    skipped_at = speech.spoken.index(prompts.QUESTION_SKIPPED)
    assert speech.spoken[skipped_at + 1] == "6번 질문입니다."


def test_total_score_is_sum_of_scores():
    answers = correct_answers(10)
    answers[1] = "모르겠어요"
    answers[7] = "글쎄요"
    controller = _controller(ScriptedSpeech(PROFILE + answers))

    asyncio.run(controller.run())

    result = controller.result
    assert result.total_score == sum(a.score for a in result.answers) == 8


def test_evaluator_failure_scores_zero_and_continues():
    controller = _controller(
        ScriptedSpeech(PROFILE + correct_answers(10)),
        evaluator=KeywordEvaluator(failing={3}),
    )

    final = asyncio.run(controller.run())

    assert final == Completed()
    failed = controller.result.answers[2]
    assert failed.score == 0
    assert failed.explanation == prompts.EVALUATION_ERROR_EXPLANATION
    assert failed.transcript == "정답3"
    assert controller.result.total_score == 9


def test_permission_denied_stops_before_listening():
    speech = ScriptedSpeech(PROFILE)
    repository = InMemoryResultRepository()
    controller = _controller(speech, granted=False, repository=repository)

    final = asyncio.run(controller.run())

    assert final == Failed(prompts.PERMISSION_REQUIRED)
    assert speech.listen_calls == []
    assert speech.spoken == [prompts.failure(prompts.PERMISSION_REQUIRED)]
    assert repository.results == []


def test_unparsable_profile_answer_is_asked_again():
    speech = ScriptedSpeech(["홍길동", "사과", "여자", "서른"] + correct_answers(2))
    controller = _controller(speech, questions=2)

    asyncio.run(controller.run())

    assert controller.profile.gender is Gender.FEMALE
    assert controller.profile.age_group is AgeGroup.THIRTIES
    assert prompts.NOT_UNDERSTOOD_APOLOGY in speech.spoken


def test_empty_question_set_completes_with_zero_score():
    controller = _controller(ScriptedSpeech(PROFILE), questions=0)

    final = asyncio.run(controller.run())

    assert final == Completed()
    assert controller.result.answers == ()
    assert controller.result.total_score == 0


def test_platform_speech_error_fails_session():
    speech = ScriptedSpeech(PROFILE + [PlatformSpeechError("stream closed")])
    repository = InMemoryResultRepository()
    controller = _controller(speech, repository=repository)

    final = asyncio.run(controller.run())

    assert final == Failed("stream closed")
    assert repository.results == []
    assert speech.closed


def test_unsupported_speech_fails_even_when_announcement_fails():
    speech = ScriptedSpeech(speak_error=SpeechUnsupportedError("no audio output"))
    controller = _controller(speech)

    final = asyncio.run(controller.run())

    assert final == Failed("no audio output")


def test_cancellation_marks_session_failed():
    speech = HangingSpeech()
    controller = _controller(speech)

    async def scenario():
        task = asyncio.create_task(controller.run())
        while not speech.listen_calls:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert controller.state == Failed(prompts.SESSION_CANCELLED)
    assert speech.closed


def test_snapshots_follow_progress():
    observer = RecordingObserver()
    controller = _controller(ScriptedSpeech(PROFILE + correct_answers(2)), questions=2, observer=observer)

    asyncio.run(controller.run())

    states = [snapshot.state for snapshot in observer.snapshots]
    assert states[0] == "RequestingPermission"
    assert "CollectingProfile" in states
    assert "EvaluatingAnswer" in states
    asking = next(s for s in observer.snapshots if s.state == "AskingQuestion")
    assert asking.question["id"] == 1
    assert asking.total_questions == 2
    final = observer.snapshots[-1]
    assert final.terminal
    assert final.state == "Completed"
    assert final.result_id == controller.result.id
    assert final.answers_recorded == 2
