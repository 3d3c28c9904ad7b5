"""Bounded prompt-listen-normalize loop for a single exchange."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from cognitive_insight.application.interfaces import SpeechCapabilityInterface
from cognitive_insight.domain.models import NO_ANSWER
from cognitive_insight.services.speech import (
    ListenError,
    ListenTimeoutError,
    LowConfidenceError,
    NoSpeechError,
)
from cognitive_insight.telemetry import record_listen_failure, record_repeat_request

from . import prompts
from .normalizer import UNPARSABLE, is_repeat_request, normalize_name

logger = logging.getLogger("cognitive_insight.session")
transcript_logger = logging.getLogger("cognitive_insight.logs.transcript")

T = TypeVar("T")

UNPARSABLE_CATEGORY = "unparsable"

_APOLOGIES = {
    NoSpeechError: prompts.NO_SPEECH_APOLOGY,
    ListenTimeoutError: prompts.TIMEOUT_APOLOGY,
    LowConfidenceError: prompts.LOW_CONFIDENCE_APOLOGY,
}


class ExchangeExhausted(RuntimeError):
    """Every attempt of an exchange failed."""

    def __init__(self, attempts: int, failures: Sequence[str]) -> None:
        super().__init__(
            f"Exchange failed after {attempts} attempts ({', '.join(failures)})."
        )
        self.attempts = attempts
        self.failures = tuple(failures)


class RetryPolicy:
    """Ask, listen and accept, retrying recognised failures up to ``max_attempts``.

    A transcript containing the repeat keyword re-issues the prompt without
    consuming an attempt. No apology is spoken after the last failed attempt.
    Listen failures outside the retryable categories propagate unchanged.
    """

    def __init__(
        self,
        speech: SpeechCapabilityInterface,
        *,
        max_attempts: int = 3,
        timeout_seconds: float = 10.0,
        pause_seconds: float = 0.5,
        repeat_keyword: str = "다시",
        session_id: str = "-",
        on_transcript: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._speech = speech
        self._timeout_seconds = timeout_seconds
        self._pause_seconds = pause_seconds
        self._repeat_keyword = repeat_keyword
        self._session_id = session_id
        self._on_transcript = on_transcript
        self._sleep = sleep

    async def ask(
        self,
        prompt: str,
        normalize: Callable[[str], T],
        *,
        grammar: Optional[Sequence[str]] = None,
        speak_first: bool = True,
        repeat_ack: str = prompts.PROFILE_REPEAT_ACK,
        label: str = "exchange",
    ) -> T:
        """Return the first accepted value or raise :class:`ExchangeExhausted`."""

        if speak_first:
            await self._prompt(prompt, label)

        hints = self._hints(grammar)
        failures: List[str] = []
        while len(failures) < self.max_attempts:
            try:
                transcript = await self._speech.listen(self._timeout_seconds, hints)
            except (NoSpeechError, ListenTimeoutError, LowConfidenceError) as exc:
                failures.append(exc.category)
                record_listen_failure(exc.category)
                logger.info(
                    "session=%s %s attempt %s/%s failed: %s",
                    self._session_id,
                    label,
                    len(failures),
                    self.max_attempts,
                    exc.category,
                )
                await self._apologize(failures, _apology_for(exc), prompt, label)
                continue

            transcript_logger.info(
                "session=%s stage=%s heard=%r", self._session_id, label, transcript
            )
            if self._on_transcript is not None:
                self._on_transcript(transcript)

            if is_repeat_request(transcript, self._repeat_keyword):
                record_repeat_request()
                logger.info("session=%s %s repeat requested", self._session_id, label)
                await self._say(repeat_ack, label)
                await self._prompt(prompt, label)
                continue

            value = normalize(transcript)
            if value is UNPARSABLE:
                failures.append(UNPARSABLE_CATEGORY)
                record_listen_failure(UNPARSABLE_CATEGORY)
                logger.info(
                    "session=%s %s attempt %s/%s unparsable: %r",
                    self._session_id,
                    label,
                    len(failures),
                    self.max_attempts,
                    transcript,
                )
                await self._apologize(failures, prompts.NOT_UNDERSTOOD_APOLOGY, prompt, label)
                continue
            return value

        raise ExchangeExhausted(len(failures), failures)

    async def ask_or_no_answer(
        self,
        prompt: str,
        *,
        speak_first: bool = False,
        label: str = "question",
    ) -> str:
        """Open-vocabulary variant that yields ``NO_ANSWER`` instead of raising."""

        try:
            return await self.ask(
                prompt,
                normalize_name,
                speak_first=speak_first,
                repeat_ack=prompts.QUESTION_REPEAT_ACK,
                label=label,
            )
        except ExchangeExhausted as exc:
            logger.warning(
                "session=%s %s left unanswered after %s attempts",
                self._session_id,
                label,
                exc.attempts,
            )
            return NO_ANSWER

    def _hints(self, grammar: Optional[Sequence[str]]) -> Optional[List[str]]:
        if not grammar:
            return None
        hints = list(grammar)
        if self._repeat_keyword and self._repeat_keyword not in hints:
            hints.append(self._repeat_keyword)
        return hints

    async def _apologize(
        self, failures: Sequence[str], apology: str, prompt: str, label: str
    ) -> None:
        if len(failures) >= self.max_attempts:
            return
        await self._say(apology, label)
        await self._prompt(prompt, label)

    async def _prompt(self, prompt: str, label: str) -> None:
        await self._say(prompt, label)
        if self._pause_seconds:
            await self._sleep(self._pause_seconds)

    async def _say(self, text: str, label: str) -> None:
        transcript_logger.info("session=%s stage=%s said=%r", self._session_id, label, text)
        await self._speech.speak(text)


def _apology_for(exc: ListenError) -> str:
    for error_type, apology in _APOLOGIES.items():
        if isinstance(exc, error_type):
            return apology
    return prompts.NOT_UNDERSTOOD_APOLOGY


__all__ = ["ExchangeExhausted", "RetryPolicy", "UNPARSABLE_CATEGORY"]
