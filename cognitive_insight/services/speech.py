"""Speech capability owning the audio devices of one interview session.

``speak`` and ``listen`` are the only operations that touch audio. Both are
single-flight: a new utterance flushes the one still playing, and a new
recognition stops the one still running. Whatever the outcome of a listen
call, its recognition task is torn down exactly once before it returns.
"""

from __future__ import annotations

import asyncio
import logging
from difflib import SequenceMatcher
from typing import Awaitable, Callable, List, Optional, Sequence

from cognitive_insight.application.interfaces import SpeechCapabilityInterface
from cognitive_insight.config.settings import Settings, SpeechConfig
from cognitive_insight.session.errors import SpeechUnsupportedError

from .audio_device import AudioDeviceError, SoundDeviceAudio, cue_tone
from .speech_synthesis import PollySpeechSynthesizer, SynthesisError
from .transcribe import (
    NoSpeechDetected,
    TranscribeService,
    TranscriptionError,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)

GRAMMAR_MATCH_RATIO = 0.8
MIN_FUZZY_LENGTH = 4


class SpeechError(RuntimeError):
    """Raised when an utterance cannot be synthesised or played."""


class SpeechInterruptedError(SpeechError):
    """Raised to the caller of an utterance flushed by a newer one."""


class ListenError(RuntimeError):
    """Base class for recognition attempts that produced no usable transcript."""

    category = "platform"


class NoSpeechError(ListenError):
    category = "no_speech"


class LowConfidenceError(ListenError):
    category = "low_confidence"

    def __init__(self, transcript: str, confidence: float) -> None:
        super().__init__(f"Recognition confidence {confidence:.2f} is below the threshold.")
        self.transcript = transcript
        self.confidence = confidence


class ListenTimeoutError(ListenError):
    category = "timeout"


class ListenAbortedError(ListenError):
    """The recognition was stopped because a newer listen call superseded it."""

    category = "aborted"


class PlatformSpeechError(ListenError):
    category = "platform"


def constrain_to_grammar(transcript: str, hints: Optional[Sequence[str]]) -> str:
    """Snap ``transcript`` onto the closed vocabulary given by ``hints``.

    A hint that equals the transcript once whitespace is removed wins.
    Otherwise, for phrases of at least ``MIN_FUZZY_LENGTH`` characters, the
    most similar hint wins when its ratio reaches ``GRAMMAR_MATCH_RATIO``.
    Anything else is returned unchanged so the normalizer can reject it.
    """

    if not hints:
        return transcript
    compact = "".join(transcript.split())
    if not compact:
        return transcript

    for hint in hints:
        if "".join(hint.split()) == compact:
            return hint
    if len(compact) < MIN_FUZZY_LENGTH:
        return transcript

    best_hint = transcript
    best_ratio = 0.0
    for hint in hints:
        candidate = "".join(hint.split())
        if len(candidate) < MIN_FUZZY_LENGTH:
            continue
        ratio = SequenceMatcher(None, compact, candidate).ratio()
        if ratio > best_ratio:
            best_hint, best_ratio = hint, ratio
    return best_hint if best_ratio >= GRAMMAR_MATCH_RATIO else transcript


class SpeechCapability(SpeechCapabilityInterface):
    """Polly + Transcribe + sounddevice implementation of the speech contract."""

    def __init__(
        self,
        synthesizer: PollySpeechSynthesizer,
        recognizer: TranscribeService,
        audio: SoundDeviceAudio,
        config: SpeechConfig,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._synthesizer = synthesizer
        self._recognizer = recognizer
        self._audio = audio
        self._config = config
        self._sleep = sleep
        self._utterance_task: asyncio.Task | None = None
        self._recognition_task: asyncio.Task | None = None
        self._is_speaking = False
        self._is_listening = False
        self._listeners: List[Callable[[], None]] = []
        self._devices_checked = False
        self._cue = cue_tone(
            frequency_hz=config.cue_frequency_hz,
            duration_seconds=config.cue_duration_seconds,
            volume=config.cue_volume,
            sample_rate=audio.output_sample_rate,
        )

    @property
    def is_speaking(self) -> bool:
        return self._is_speaking

    @property
    def is_listening(self) -> bool:
        return self._is_listening

    def add_activity_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    async def speak(self, text: str) -> None:
        self._ensure_supported()
        await self._flush_utterance()
        if not text or not text.strip():
            return

        task = asyncio.create_task(self._utter(text))
        self._utterance_task = task
        self._set_speaking(True)
        try:
            await asyncio.wait({task})
            if task.cancelled():
                raise SpeechInterruptedError("Utterance was flushed by a newer one.")
            task.result()
        finally:
            if not task.done():
                task.cancel()
                self._audio.stop_playback()
                await asyncio.gather(task, return_exceptions=True)
            if self._utterance_task is task:
                self._utterance_task = None
                self._set_speaking(False)

    async def listen(
        self,
        timeout_seconds: float,
        grammar_hints: Optional[Sequence[str]] = None,
    ) -> str:
        self._ensure_supported()
        await self._cancel_recognition()

        task = asyncio.create_task(self._recognize())
        self._recognition_task = task
        self._set_listening(True)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
            if not done:
                raise ListenTimeoutError(
                    f"No recognition result within {timeout_seconds:g} seconds."
                )
            if task.cancelled():
                raise ListenAbortedError("Recognition was superseded by a newer listen call.")
            outcome: TranscriptionResult = task.result()
        finally:
            await self._release_recognition(task)

        if outcome.confidence < self._config.confidence_threshold:
            raise LowConfidenceError(outcome.transcript, outcome.confidence)
        if not outcome.transcript.strip():
            raise NoSpeechError("Recognition finished without a transcript.")
        return constrain_to_grammar(outcome.transcript, grammar_hints)

    async def aclose(self) -> None:
        await self._cancel_recognition()
        await self._flush_utterance(settle=False)

    async def _utter(self, text: str) -> None:
        try:
            speech = await self._synthesizer.synthesize(text)
        except SynthesisError as exc:
            raise SpeechError(str(exc)) from exc
        try:
            await self._audio.play(speech.samples, speech.sample_rate)
        except AudioDeviceError as exc:
            raise SpeechUnsupportedError(f"Audio output failed: {exc}") from exc

    async def _recognize(self) -> TranscriptionResult:
        try:
            await self._audio.play(self._cue, self._audio.output_sample_rate)
            return await self._recognizer.recognize(self._audio)
        except NoSpeechDetected as exc:
            raise NoSpeechError(str(exc)) from exc
        except TranscriptionError as exc:
            raise PlatformSpeechError(str(exc)) from exc
        except AudioDeviceError as exc:
            raise SpeechUnsupportedError(f"Audio input failed: {exc}") from exc

    async def _flush_utterance(self, *, settle: bool = True) -> None:
        task = self._utterance_task
        if task is None or task.done():
            return
        logger.debug("Flushing in-flight utterance before speaking again")
        task.cancel()
        self._audio.stop_playback()
        await asyncio.gather(task, return_exceptions=True)
        if self._utterance_task is task:
            self._utterance_task = None
            self._set_speaking(False)
        if settle and self._config.flush_delay_seconds:
            await self._sleep(self._config.flush_delay_seconds)

    async def _cancel_recognition(self) -> None:
        task = self._recognition_task
        if task is None:
            return
        if not task.done():
            logger.debug("Stopping previous recognition before listening again")
            task.cancel()
        await self._release_recognition(task)

    async def _release_recognition(self, task: asyncio.Task) -> None:
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if self._recognition_task is task:
            self._recognition_task = None
            self._set_listening(False)

    def _ensure_supported(self) -> None:
        if self._devices_checked:
            return
        try:
            self._audio.check_available()
        except AudioDeviceError as exc:
            raise SpeechUnsupportedError(f"Speech is not supported on this host: {exc}") from exc
        self._devices_checked = True

    def _set_speaking(self, value: bool) -> None:
        if self._is_speaking != value:
            self._is_speaking = value
            self._notify()

    def _set_listening(self, value: bool) -> None:
        if self._is_listening != value:
            self._is_listening = value
            self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()


def create_speech_capability(settings: Settings) -> SpeechCapability:
    """Build a fresh capability, with its own devices, for one session."""

    try:
        synthesizer = PollySpeechSynthesizer(settings.polly)
        recognizer = TranscribeService(settings.transcribe, settings.speech)
    except Exception as exc:  # pragma: no cover - integration failure
        raise SpeechUnsupportedError(f"AWS speech clients unavailable: {exc}") from exc
    audio = SoundDeviceAudio(output_sample_rate=settings.polly.sample_rate)
    return SpeechCapability(synthesizer, recognizer, audio, settings.speech)


__all__ = [
    "GRAMMAR_MATCH_RATIO",
    "MIN_FUZZY_LENGTH",
    "ListenAbortedError",
    "ListenError",
    "ListenTimeoutError",
    "LowConfidenceError",
    "NoSpeechError",
    "PlatformSpeechError",
    "SpeechCapability",
    "SpeechError",
    "SpeechInterruptedError",
    "constrain_to_grammar",
    "create_speech_capability",
]
