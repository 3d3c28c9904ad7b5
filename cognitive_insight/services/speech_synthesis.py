"""Amazon Polly text-to-speech returning raw samples for local playback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape as html_escape
from typing import Any

import numpy as np
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from cognitive_insight.config.settings import PollyConfig
from cognitive_insight.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesizedSpeech:
    """Mono float32 samples in [-1, 1] at ``sample_rate``."""

    samples: np.ndarray
    sample_rate: int
    voice_id: str


class SynthesisError(RuntimeError):
    """Raised when Polly cannot synthesise an utterance."""


class PollySpeechSynthesizer:
    """Synthesise Korean prompts with a Polly neural voice."""

    def __init__(self, config: PollyConfig, client: Any = None) -> None:
        self._config = config
        self._client = client or create_boto3_client("polly", region_name=config.region)

    async def synthesize(self, text: str, *, voice_id: str | None = None) -> SynthesizedSpeech:
        voice = voice_id or self._config.voice_id
        ssml = self._build_ssml(text, rate=self._config.speaking_rate)
        try:
            response: dict[str, Any] = await run_in_threadpool(
                self._client.synthesize_speech,
                TextType="ssml",
                Text=ssml,
                VoiceId=voice,
                Engine=self._config.engine,
                OutputFormat="pcm",
                SampleRate=str(self._config.sample_rate),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly synth failed for voice '%s'", voice)
            raise SynthesisError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise SynthesisError("Polly returned no audio stream.")
        pcm_bytes = await run_in_threadpool(audio_stream.read)
        if not pcm_bytes:
            raise SynthesisError("Polly returned an empty audio stream.")

        samples = np.frombuffer(pcm_bytes, dtype=np.int16).astype(np.float32) / 32768.0
        return SynthesizedSpeech(
            samples=samples,
            sample_rate=self._config.sample_rate,
            voice_id=voice,
        )

    @staticmethod
    def _build_ssml(text: str, *, rate: float) -> str:
        rate_pct = max(60, min(140, int(round(rate * 100))))
        if rate_pct != 100:
            return f'<speak><prosody rate="{rate_pct}%">{html_escape(text)}</prosody></speak>'
        return f"<speak>{html_escape(text)}</speak>"


__all__ = ["PollySpeechSynthesizer", "SynthesisError", "SynthesizedSpeech"]
