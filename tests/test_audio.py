"""Tests for audio helpers and Polly synthesis with a stubbed client."""

import asyncio
import io

import numpy as np
import pytest
from botocore.exceptions import ClientError

from cognitive_insight.config.settings import PollyConfig
from cognitive_insight.services.audio_device import cue_tone, resample
from cognitive_insight.services.speech_synthesis import PollySpeechSynthesizer, SynthesisError


class FakePolly:
    def __init__(self, pcm=b"", error=None):
        self.pcm = pcm
        self.error = error
        self.requests = []

    def synthesize_speech(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return {"AudioStream": io.BytesIO(self.pcm)}


def test_cue_tone_shape_and_envelope():
    tone = cue_tone(frequency_hz=880.0, duration_seconds=0.1, volume=0.2, sample_rate=16000)

    assert tone.dtype == np.float32
    assert tone.size == 1600
    assert tone[0] == 0.0
    assert abs(tone[-1]) < 1e-3
    assert np.max(np.abs(tone)) <= 0.2 + 1e-6


def test_resample_changes_length_by_rate():
    samples = np.zeros(1600, dtype=np.float32)

    assert resample(samples, 16000, 48000).size == 4800
    assert resample(samples, 16000, 16000) is samples


def test_polly_pcm_is_converted_to_float_samples():
    pcm = np.array([0, 16384, -32768], dtype=np.int16).tobytes()
    polly = FakePolly(pcm)
    synthesizer = PollySpeechSynthesizer(PollyConfig(speaking_rate=0.8), client=polly)

    speech = asyncio.run(synthesizer.synthesize("안녕 <하세요>"))

    np.testing.assert_allclose(speech.samples, [0.0, 0.5, -1.0])
    assert speech.sample_rate == 16000
    assert speech.voice_id == "Seoyeon"
    request = polly.requests[0]
    assert request["TextType"] == "ssml"
    assert request["OutputFormat"] == "pcm"
    assert request["Text"] == '<speak><prosody rate="80%">안녕 &lt;하세요&gt;</prosody></speak>'


def test_polly_failures_raise_synthesis_error():
    error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "SynthesizeSpeech")
    synthesizer = PollySpeechSynthesizer(PollyConfig(), client=FakePolly(error=error))

    with pytest.raises(SynthesisError):
        asyncio.run(synthesizer.synthesize("안녕하세요"))


def test_empty_polly_stream_is_an_error():
    synthesizer = PollySpeechSynthesizer(PollyConfig(), client=FakePolly(b""))

    with pytest.raises(SynthesisError, match="empty"):
        asyncio.run(synthesizer.synthesize("안녕하세요"))
