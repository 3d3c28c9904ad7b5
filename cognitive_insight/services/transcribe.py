"""Amazon Transcribe integration helpers using the Streaming API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np
from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent

from cognitive_insight.config.settings import SpeechConfig, TranscribeConfig, settings
from cognitive_insight.services.audio_device import AudioDeviceError
from cognitive_insight.services.aws import export_credentials_to_environment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptionResult:
    """Final transcript of one utterance and how sure the service was about it."""

    transcript: str
    confidence: float = 1.0
    language_code: str | None = None


class TranscriptionError(RuntimeError):
    """Raised when Amazon Transcribe fails to process audio successfully."""


class NoSpeechDetected(TranscriptionError):
    """Raised when the utterance ended without anything recognisable."""


class EndOfSpeechDetector:
    """Decide when to stop streaming from RMS energy of 16-bit PCM chunks.

    Speech ends after ``end_silence_seconds`` of silence following speech, or
    after ``no_speech_seconds`` when nothing above ``silence_rms`` was heard.
    """

    def __init__(
        self,
        *,
        sample_rate: int,
        silence_rms: float,
        end_silence_seconds: float,
        no_speech_seconds: float,
    ) -> None:
        self._sample_rate = sample_rate
        self._silence_rms = silence_rms
        self._end_silence_seconds = end_silence_seconds
        self._no_speech_seconds = no_speech_seconds
        self.heard_speech = False
        self._elapsed = 0.0
        self._silence_run = 0.0

    def feed(self, chunk: bytes) -> bool:
        """Account for one chunk; return True once the utterance is over."""

        samples = np.frombuffer(chunk, dtype=np.int16)
        if samples.size == 0:
            return False
        duration = samples.size / self._sample_rate
        rms = float(np.sqrt(np.mean(samples.astype(np.float64) ** 2)))
        self._elapsed += duration

        if rms >= self._silence_rms:
            self.heard_speech = True
            self._silence_run = 0.0
            return False

        self._silence_run += duration
        if self.heard_speech:
            return self._silence_run >= self._end_silence_seconds
        return self._elapsed >= self._no_speech_seconds


def alternative_confidence(alternative: Any) -> float:
    """Mean confidence of the alternative's items; 1.0 when none is reported."""

    values = [
        float(item.confidence)
        for item in (getattr(alternative, "items", None) or [])
        if getattr(item, "confidence", None) is not None
    ]
    if not values:
        return 1.0
    return sum(values) / len(values)


class _FinalSegmentHandler(TranscriptResultStreamHandler):
    """Keep the best alternative of every non-partial segment."""

    def __init__(self, transcript_result_stream) -> None:
        super().__init__(transcript_result_stream)
        self.segments: List[tuple[str, float]] = []

    async def handle_transcript_event(self, transcript_event: TranscriptEvent) -> None:
        for result in transcript_event.transcript.results:
            if result.is_partial or not result.alternatives:
                continue
            best = max(result.alternatives, key=alternative_confidence)
            text = (best.transcript or "").strip()
            if text:
                logger.debug("Final segment received: %s", text[:40])
                self.segments.append((text, alternative_confidence(best)))


def combine_segments(segments: List[tuple[str, float]]) -> TranscriptionResult:
    if not segments:
        raise NoSpeechDetected("Nothing was recognised in the utterance.")
    transcript = " ".join(text for text, _ in segments)
    confidence = sum(score for _, score in segments) / len(segments)
    return TranscriptionResult(transcript=transcript, confidence=confidence)


class TranscribeService:
    """High-level facade for streaming microphone audio to Amazon Transcribe."""

    def __init__(
        self,
        config: TranscribeConfig,
        speech: SpeechConfig,
        client: Optional[TranscribeStreamingClient] = None,
    ) -> None:
        self._config = config
        self._speech = speech
        self._client = client

    def _get_client(self) -> TranscribeStreamingClient:
        if self._client is None:
            export_credentials_to_environment()
            self._client = TranscribeStreamingClient(
                region=self._config.region or settings.aws.region
            )
        return self._client

    async def recognize(self, audio) -> TranscriptionResult:
        """Stream the microphone until end of speech and return the final transcript."""

        detector = EndOfSpeechDetector(
            sample_rate=self._config.sample_rate,
            silence_rms=self._speech.silence_rms,
            end_silence_seconds=self._speech.end_silence_seconds,
            no_speech_seconds=self._speech.no_speech_seconds,
        )
        try:
            stream = await self._get_client().start_stream_transcription(
                language_code=self._config.language_code,
                media_sample_rate_hz=self._config.sample_rate,
                media_encoding="pcm",
            )
        except Exception as exc:
            raise TranscriptionError(f"Could not start streaming transcription: {exc}") from exc

        handler = _FinalSegmentHandler(stream.output_stream)

        async def write_chunks() -> None:
            try:
                async with audio.capture(
                    self._config.sample_rate, self._config.chunk_size
                ) as chunks:
                    async for chunk in chunks:
                        await stream.input_stream.send_audio_event(audio_chunk=chunk)
                        if detector.feed(chunk):
                            break
            finally:
                try:
                    await stream.input_stream.end_stream()
                except Exception as exc:
                    logger.debug("Could not close the audio input stream: %s", exc)

        writer = asyncio.create_task(write_chunks())
        reader = asyncio.create_task(handler.handle_events())
        try:
            await asyncio.gather(writer, reader)
        except AudioDeviceError:
            raise
        except Exception as exc:
            logger.error("Streaming loop failed: %s", exc)
            raise TranscriptionError(f"Streaming transcription failed: {exc}") from exc
        finally:
            # The result stream may never finish once the writer has failed.
            for task in (writer, reader):
                if not task.done():
                    task.cancel()
            await asyncio.gather(writer, reader, return_exceptions=True)

        if not detector.heard_speech and not handler.segments:
            raise NoSpeechDetected("No speech detected before the listening window closed.")
        result = combine_segments(handler.segments)
        logger.info(
            "Transcription complete. length=%s confidence=%.2f",
            len(result.transcript),
            result.confidence,
        )
        return TranscriptionResult(
            transcript=result.transcript,
            confidence=result.confidence,
            language_code=self._config.language_code,
        )


__all__ = [
    "EndOfSpeechDetector",
    "NoSpeechDetected",
    "TranscribeService",
    "TranscriptionError",
    "TranscriptionResult",
    "alternative_confidence",
    "combine_segments",
]
