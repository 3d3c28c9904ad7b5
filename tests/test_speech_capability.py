"""Tests for single-flight speak/listen over fake audio and AWS services."""

import asyncio

import numpy as np
import pytest

from cognitive_insight.config.settings import SpeechConfig
from cognitive_insight.services.audio_device import AudioDeviceError
from cognitive_insight.services.speech import (
    ListenAbortedError,
    ListenTimeoutError,
    LowConfidenceError,
    NoSpeechError,
    PlatformSpeechError,
    SpeechCapability,
    SpeechInterruptedError,
    constrain_to_grammar,
)
from cognitive_insight.services.speech_synthesis import SynthesizedSpeech
from cognitive_insight.services.transcribe import (
    NoSpeechDetected,
    TranscriptionError,
    TranscriptionResult,
)
from cognitive_insight.session.errors import SpeechUnsupportedError
from cognitive_insight.session.normalizer import (
    AGE_GROUP_GRAMMAR,
    GENDER_GRAMMAR,
    UNPARSABLE,
    normalize_age_group,
)

HANG = object()


class FakeSynthesizer:
    def __init__(self):
        self.texts = []

    async def synthesize(self, text, voice_id=None):
        self.texts.append(text)
        return SynthesizedSpeech(np.zeros(160, dtype=np.float32), 16000, "Seoyeon")


class FakeAudio:
    output_sample_rate = 16000

    def __init__(self, *, hang_first_play=False, available=True):
        self.played = []
        self.stops = 0
        self._hang_first_play = hang_first_play
        self._available = available

    def check_available(self):
        if not self._available:
            raise AudioDeviceError("no default output device")

    async def play(self, samples, sample_rate):
        self.played.append((len(samples), sample_rate))
        if self._hang_first_play and len(self.played) == 1:
            await asyncio.Event().wait()

    def stop_playback(self):
        self.stops += 1


class FakeRecognizer:
    """Each call consumes one outcome: a result, an exception, or HANG."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def recognize(self, audio):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if outcome is HANG:
            await asyncio.Event().wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _capability(recognizer=None, audio=None, synthesizer=None, **config):
    options = {"flush_delay_seconds": 0, "confidence_threshold": 0.4}
    options.update(config)
    return SpeechCapability(
        synthesizer or FakeSynthesizer(),
        recognizer or FakeRecognizer(),
        audio or FakeAudio(),
        SpeechConfig(**options),
    )


def test_listen_plays_cue_then_returns_transcript():
    audio = FakeAudio()
    capability = _capability(FakeRecognizer(TranscriptionResult("서울", 0.9)), audio)

    transcript = asyncio.run(capability.listen(1.0))

    assert transcript == "서울"
    assert len(audio.played) == 1
    assert audio.played[0][1] == 16000
    assert not capability.is_listening


def test_low_confidence_is_rejected():
    capability = _capability(FakeRecognizer(TranscriptionResult("남자", 0.2)))

    with pytest.raises(LowConfidenceError) as excinfo:
        asyncio.run(capability.listen(1.0))

    assert excinfo.value.confidence == 0.2
    assert excinfo.value.category == "low_confidence"


def test_blank_transcript_is_no_speech():
    capability = _capability(FakeRecognizer(TranscriptionResult("  ", 1.0)))

    with pytest.raises(NoSpeechError):
        asyncio.run(capability.listen(1.0))


@pytest.mark.parametrize(
    "error, expected",
    [
        (NoSpeechDetected("silence"), NoSpeechError),
        (TranscriptionError("stream reset"), PlatformSpeechError),
        (AudioDeviceError("input gone"), SpeechUnsupportedError),
    ],
)
def test_recognizer_errors_are_categorised(error, expected):
    capability = _capability(FakeRecognizer(error))

    with pytest.raises(expected):
        asyncio.run(capability.listen(1.0))


def test_listen_times_out_and_releases_recognition():
    capability = _capability(FakeRecognizer(HANG))

    with pytest.raises(ListenTimeoutError):
        asyncio.run(capability.listen(0.01))

    assert not capability.is_listening


def test_new_listen_aborts_the_running_one():
    recognizer = FakeRecognizer(HANG, TranscriptionResult("기린", 0.95))
    capability = _capability(recognizer)

    async def scenario():
        first = asyncio.create_task(capability.listen(5.0))
        while recognizer.calls == 0:
            await asyncio.sleep(0)
        second = await capability.listen(5.0)
        with pytest.raises(ListenAbortedError):
            await first
        return second

    assert asyncio.run(scenario()) == "기린"
    assert not capability.is_listening


def test_aclose_aborts_listening():
    recognizer = FakeRecognizer(HANG)
    capability = _capability(recognizer)

    async def scenario():
        pending = asyncio.create_task(capability.listen(5.0))
        while recognizer.calls == 0:
            await asyncio.sleep(0)
        await capability.aclose()
        with pytest.raises(ListenAbortedError):
            await pending

    asyncio.run(scenario())


def test_grammar_hints_snap_transcript():
    capability = _capability(FakeRecognizer(TranscriptionResult("남자 입니다", 0.9)))

    assert asyncio.run(capability.listen(1.0, GENDER_GRAMMAR)) == "남자입니다"


def test_constrain_to_grammar():
    assert constrain_to_grammar("남자 입니다", GENDER_GRAMMAR) == "남자입니다"
    assert constrain_to_grammar("70대 이상요", AGE_GROUP_GRAMMAR) == "70대 이상"
    assert constrain_to_grammar("남자요", ["남자", "여자"]) == "남자요"
    assert constrain_to_grammar("서룬살", ["서른살", "마흔살"]) == "서룬살"
    assert constrain_to_grammar("사과", ["남성", "여성"]) == "사과"
    assert constrain_to_grammar("사과", None) == "사과"


@pytest.mark.parametrize("raw", ["백십살", "백이십살", "일곱살"])
def test_grammar_leaves_out_of_range_ages_for_the_normalizer(raw):
    snapped = constrain_to_grammar(raw, AGE_GROUP_GRAMMAR)

    assert snapped == raw
    assert normalize_age_group(snapped) is UNPARSABLE


def test_listen_does_not_snap_short_age_onto_a_neighbour():
    capability = _capability(FakeRecognizer(TranscriptionResult("일곱살", 0.9)))

    assert asyncio.run(capability.listen(1.0, AGE_GROUP_GRAMMAR)) == "일곱살"


def test_speak_synthesizes_and_plays():
    synthesizer = FakeSynthesizer()
    audio = FakeAudio()
    changes = []
    capability = _capability(audio=audio, synthesizer=synthesizer)
    capability.add_activity_listener(lambda: changes.append(capability.is_speaking))

    asyncio.run(capability.speak("안녕하세요"))

    assert synthesizer.texts == ["안녕하세요"]
    assert audio.played == [(160, 16000)]
    assert changes == [True, False]
    assert not capability.is_speaking


def test_blank_text_is_not_spoken():
    synthesizer = FakeSynthesizer()
    capability = _capability(synthesizer=synthesizer)

    asyncio.run(capability.speak("   "))

    assert synthesizer.texts == []


def test_new_utterance_flushes_the_previous_one():
    audio = FakeAudio(hang_first_play=True)
    synthesizer = FakeSynthesizer()
    capability = _capability(audio=audio, synthesizer=synthesizer)

    async def scenario():
        first = asyncio.create_task(capability.speak("첫 번째"))
        while not audio.played:
            await asyncio.sleep(0)
        await capability.speak("두 번째")
        with pytest.raises(SpeechInterruptedError):
            await first

    asyncio.run(scenario())

    assert synthesizer.texts == ["첫 번째", "두 번째"]
    assert audio.stops >= 1
    assert not capability.is_speaking


def test_missing_devices_raise_unsupported():
    capability = _capability(audio=FakeAudio(available=False))

    with pytest.raises(SpeechUnsupportedError):
        asyncio.run(capability.speak("안녕하세요"))
    with pytest.raises(SpeechUnsupportedError):
        asyncio.run(capability.listen(1.0))
