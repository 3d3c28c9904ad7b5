"""Tests for the bounded ask/listen/normalize loop."""

import asyncio

import pytest

from cognitive_insight.domain.models import NO_ANSWER, Gender
from cognitive_insight.services.speech import (
    ListenTimeoutError,
    LowConfidenceError,
    NoSpeechError,
    PlatformSpeechError,
)
from cognitive_insight.session import prompts
from cognitive_insight.session.normalizer import GENDER_GRAMMAR, normalize_gender, normalize_name
from cognitive_insight.session.retry_policy import ExchangeExhausted, RetryPolicy
from cognitive_insight.session.states import ProfileStage

from fakes import ScriptedSpeech, no_sleep

PROMPT = prompts.PROFILE_PROMPTS[ProfileStage.NAME]


def _policy(speech, **kwargs):
    return RetryPolicy(speech, sleep=no_sleep, **kwargs)


def test_three_timeouts_exhaust_without_final_apology():
    speech = ScriptedSpeech([ListenTimeoutError("t")] * 3)

    with pytest.raises(ExchangeExhausted) as excinfo:
        asyncio.run(_policy(speech).ask(PROMPT, normalize_name))

    assert excinfo.value.attempts == 3
    assert excinfo.value.failures == ("timeout", "timeout", "timeout")
    assert speech.spoken == [
        PROMPT,
        prompts.TIMEOUT_APOLOGY,
        PROMPT,
        prompts.TIMEOUT_APOLOGY,
        PROMPT,
    ]


def test_success_on_last_attempt():
    speech = ScriptedSpeech([NoSpeechError("n"), ListenTimeoutError("t"), "홍길동"])

    value = asyncio.run(_policy(speech).ask(PROMPT, normalize_name))

    assert value == "홍길동"
    assert prompts.NO_SPEECH_APOLOGY in speech.spoken
    assert len(speech.listen_calls) == 3


def test_repeat_request_does_not_consume_an_attempt():
    speech = ScriptedSpeech(["다시 말씀해 주세요", "다시", "남자"])

    value = asyncio.run(
        _policy(speech, max_attempts=1).ask(PROMPT, normalize_gender, grammar=GENDER_GRAMMAR)
    )

    assert value is Gender.MALE
    assert speech.spoken.count(prompts.PROFILE_REPEAT_ACK) == 2
    assert speech.spoken.count(PROMPT) == 3


def test_grammar_hints_include_repeat_keyword():
    speech = ScriptedSpeech(["여자"])

    asyncio.run(_policy(speech).ask(PROMPT, normalize_gender, grammar=GENDER_GRAMMAR))

    hints = speech.listen_calls[0]
    assert "다시" in hints
    assert set(GENDER_GRAMMAR) <= set(hints)


def test_open_vocabulary_listen_has_no_hints():
    speech = ScriptedSpeech(["홍길동"])

    asyncio.run(_policy(speech).ask(PROMPT, normalize_name))

    assert speech.listen_calls == [None]


def test_low_confidence_reprompts():
    speech = ScriptedSpeech([LowConfidenceError("남자", 0.2), "여자"])

    value = asyncio.run(_policy(speech).ask(PROMPT, normalize_gender))

    assert value is Gender.FEMALE
    assert speech.spoken == [PROMPT, prompts.LOW_CONFIDENCE_APOLOGY, PROMPT]


def test_unparsable_answers_count_as_failures():
    speech = ScriptedSpeech(["몰라요"] * 3)

    with pytest.raises(ExchangeExhausted) as excinfo:
        asyncio.run(_policy(speech).ask(PROMPT, normalize_gender))

    assert excinfo.value.failures == ("unparsable",) * 3
    assert speech.spoken.count(prompts.NOT_UNDERSTOOD_APOLOGY) == 2


def test_platform_errors_propagate():
    speech = ScriptedSpeech([PlatformSpeechError("stream closed")])

    with pytest.raises(PlatformSpeechError):
        asyncio.run(_policy(speech).ask(PROMPT, normalize_name))


def test_transcripts_are_reported():
    heard = []
    speech = ScriptedSpeech(["홍길동"])

    asyncio.run(_policy(speech, on_transcript=heard.append).ask(PROMPT, normalize_name))

    assert heard == ["홍길동"]


def test_question_exhaustion_yields_no_answer():
    speech = ScriptedSpeech([ListenTimeoutError("t")] * 3)

    value = asyncio.run(_policy(speech).ask_or_no_answer("질문", label="question-5"))

    assert value == NO_ANSWER
    # The question itself is spoken by the caller; only re-prompts are said here.
    assert speech.spoken == [prompts.TIMEOUT_APOLOGY, "질문", prompts.TIMEOUT_APOLOGY, "질문"]


def test_question_repeat_uses_question_acknowledgement():
    speech = ScriptedSpeech(["다시요", "서울"])

    value = asyncio.run(_policy(speech).ask_or_no_answer("질문"))

    assert value == "서울"
    assert speech.spoken == [prompts.QUESTION_REPEAT_ACK, "질문"]


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(ScriptedSpeech(), max_attempts=0)
