"""Interactive voice session controller.

Drives one interview from permission request to result hand-off. The state
lives in a single :mod:`~cognitive_insight.session.states` value; every step
performs the I/O of the current state and reports its outcome as an event.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from cognitive_insight.application.interfaces import (
    AnswerEvaluatorInterface,
    PermissionProviderInterface,
    QuestionBankInterface,
    ResultRepositoryInterface,
    SessionObserverInterface,
    SpeechCapabilityInterface,
)
from cognitive_insight.config.settings import SessionConfig
from cognitive_insight.domain.models import (
    NO_ANSWER,
    Answer,
    Evaluation,
    ProfileDraft,
    Question,
    SessionSnapshot,
    TestResult,
    UserProfile,
)
from cognitive_insight.telemetry import (
    record_session_completed,
    record_session_failed,
    record_session_started,
)

from . import prompts
from .errors import (
    AnswerOrderError,
    EvaluatorFailure,
    PermissionDeniedError,
    ProfileCollectionExhausted,
    QuestionAnswerExhausted,
)
from .normalizer import (
    AGE_GROUP_GRAMMAR,
    GENDER_GRAMMAR,
    normalize_age_group,
    normalize_gender,
    normalize_name,
)
from .result import assemble_result, hand_off, utc_now
from .retry_policy import ExchangeExhausted, RetryPolicy
from .states import (
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
    SessionEvent,
    SessionState,
    StartRequested,
    is_terminal,
    state_name,
    transition,
)

logger = logging.getLogger("cognitive_insight.session")

_PROFILE_FIELDS = {
    ProfileStage.NAME: (normalize_name, None),
    ProfileStage.GENDER: (normalize_gender, GENDER_GRAMMAR),
    ProfileStage.AGE_GROUP: (normalize_age_group, AGE_GROUP_GRAMMAR),
}


class SessionController:
    """Run one interview session over injected collaborators."""

    def __init__(
        self,
        *,
        speech: SpeechCapabilityInterface,
        permission: PermissionProviderInterface,
        question_bank: QuestionBankInterface,
        evaluator: AnswerEvaluatorInterface,
        repository: ResultRepositoryInterface,
        config: SessionConfig,
        session_id: Optional[str] = None,
        observer: Optional[SessionObserverInterface] = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._speech = speech
        self._permission = permission
        self._question_bank = question_bank
        self._evaluator = evaluator
        self._repository = repository
        self._config = config
        self._observer = observer
        self._clock = clock
        self._sleep = sleep

        self._state: SessionState = Idle()
        self._draft = ProfileDraft()
        self._profile: Optional[UserProfile] = None
        self._questions: List[Question] = []
        self._answers: List[Answer] = []
        self._captured: Optional[str] = None
        self._transcript = ""
        self._result: Optional[TestResult] = None
        self._finished = False

        self._policy = RetryPolicy(
            speech,
            max_attempts=config.max_attempts,
            timeout_seconds=config.answer_timeout_seconds,
            pause_seconds=config.post_prompt_pause_seconds,
            repeat_keyword=config.repeat_keyword,
            session_id=self.session_id,
            on_transcript=self._on_transcript,
            sleep=sleep,
        )
        speech.add_activity_listener(self._publish)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def questions(self) -> Tuple[Question, ...]:
        return tuple(self._questions)

    @property
    def answers(self) -> Tuple[Answer, ...]:
        return tuple(self._answers)

    @property
    def result(self) -> Optional[TestResult]:
        return self._result

    def dispatch(self, event: SessionEvent) -> SessionState:
        previous = self._state
        self._state = transition(previous, event)
        if self._state != previous:
            logger.info(
                "session=%s %s -> %s",
                self.session_id,
                state_name(previous),
                state_name(self._state),
            )
        self._publish()
        return self._state

    async def run(self) -> SessionState:
        """Drive the session to ``Completed`` or ``Failed`` and return the final state."""

        record_session_started()
        try:
            self.dispatch(StartRequested())
            while not is_terminal(self._state):
                await self._advance()
            if isinstance(self._state, Completed):
                await self._finish()
            else:
                # Permission denial ends the loop without raising.
                await self._conclude_failure(PermissionDeniedError.__name__)
        except asyncio.CancelledError:
            self.dispatch(ErrorRaised(prompts.SESSION_CANCELLED))
            record_session_failed("cancelled")
            raise
        except Exception as exc:
            logger.exception("session=%s failed in %s", self.session_id, state_name(self._state))
            self.dispatch(ErrorRaised(_failure_message(exc)))
            await self._conclude_failure(type(exc).__name__)
        finally:
            await self._speech.aclose()
            self._finished = True
            self._publish()
        return self._state

    async def _advance(self) -> None:
        state = self._state
        if isinstance(state, RequestingPermission):
            await self._request_permission()
        elif isinstance(state, CollectingProfile):
            await self._collect_profile_field(state.stage)
        elif isinstance(state, PreparingTest):
            await self._prepare_test()
        elif isinstance(state, AskingQuestion):
            await self._ask_question(state.index)
        elif isinstance(state, ListeningForAnswer):
            await self._listen_for_answer(state.index)
        elif isinstance(state, EvaluatingAnswer):
            await self._evaluate_answer(state.index)
        else:
            raise RuntimeError(f"No step defined for state {state_name(state)}.")

    async def _request_permission(self) -> None:
        if await self._permission.request_microphone_access():
            self.dispatch(PermissionGranted())
        else:
            logger.warning("session=%s microphone access denied", self.session_id)
            self.dispatch(PermissionDenied(prompts.PERMISSION_REQUIRED))

    async def _collect_profile_field(self, stage: ProfileStage) -> None:
        normalize, grammar = _PROFILE_FIELDS[stage]
        try:
            value = await self._policy.ask(
                prompts.PROFILE_PROMPTS[stage],
                normalize,
                grammar=grammar,
                label=stage.value,
            )
        except ExchangeExhausted as exc:
            raise ProfileCollectionExhausted(stage.value, exc.attempts) from exc
        setattr(self._draft, stage.value, value)
        self._transcript = ""
        self.dispatch(ProfileFieldCollected(stage))

    async def _prepare_test(self) -> None:
        self._profile = self._draft.complete()
        self._questions = list(self._question_bank.get_session_questions())
        await self._speech.speak(prompts.welcome(self._profile.name, len(self._questions)))
        self.dispatch(QuestionsLoaded(len(self._questions)))

    async def _ask_question(self, index: int) -> None:
        question = self._questions[index]
        self._transcript = ""
        await self._speech.speak(question.text)
        if self._config.post_prompt_pause_seconds:
            await self._sleep(self._config.post_prompt_pause_seconds)
        self.dispatch(QuestionAsked(index))

    async def _listen_for_answer(self, index: int) -> None:
        question = self._questions[index]
        transcript = await self._policy.ask_or_no_answer(
            question.text,
            label=f"question-{question.id}",
        )
        if transcript != NO_ANSWER:
            self._captured = transcript
            self.dispatch(AnswerCaptured(index))
            return

        logger.info(
            "session=%s %s",
            self.session_id,
            QuestionAnswerExhausted(question.id, self._policy.max_attempts),
        )
        await self._speech.speak(prompts.QUESTION_SKIPPED)
        self._record_answer(
            index,
            Answer(
                question_id=question.id,
                transcript=NO_ANSWER,
                score=0,
                explanation=prompts.NO_ANSWER_EXPLANATION,
            ),
        )

    async def _evaluate_answer(self, index: int) -> None:
        question = self._questions[index]
        transcript = self._captured or ""
        try:
            evaluation = await self._evaluator.evaluate(question, transcript)
        except Exception as exc:
            failure = EvaluatorFailure(f"Evaluation of question {question.id} failed: {exc}")
            logger.warning("session=%s %s", self.session_id, failure)
            evaluation = Evaluation(score=0, explanation=prompts.EVALUATION_ERROR_EXPLANATION)

        self._captured = None
        self._record_answer(
            index,
            Answer(
                question_id=question.id,
                transcript=transcript,
                score=evaluation.score,
                explanation=evaluation.explanation,
            ),
        )

    def _record_answer(self, index: int, answer: Answer) -> None:
        if len(self._answers) != index:
            raise AnswerOrderError(
                f"Answer for question #{index} arrived with {len(self._answers)} answers recorded."
            )
        if answer.question_id != self._questions[index].id:
            raise AnswerOrderError(
                f"Answer for question {answer.question_id} recorded in slot {index}."
            )
        self._answers.append(answer)
        self._transcript = ""
        self.dispatch(AnswerRecorded(index, len(self._questions)))

    async def _finish(self) -> None:
        total_score = sum(answer.score for answer in self._answers)
        await self._speech.speak(prompts.closing(total_score))
        result = assemble_result(
            self._profile,
            self._questions,
            self._answers,
            clock=self._clock,
        )
        await hand_off(result, self._repository)
        self._result = result
        record_session_completed()

    async def _conclude_failure(self, kind: str) -> None:
        record_session_failed(kind)
        message = self._state.message if isinstance(self._state, Failed) else prompts.UNKNOWN_ERROR
        try:
            await self._speech.speak(prompts.failure(message))
        except Exception as exc:
            logger.warning(
                "session=%s could not announce failure: %s", self.session_id, exc
            )

    def _on_transcript(self, transcript: str) -> None:
        self._transcript = transcript
        self._publish()

    def _publish(self) -> None:
        if self._observer is not None:
            self._observer.publish(self.snapshot())

    def snapshot(self) -> SessionSnapshot:
        state = self._state
        index = getattr(state, "index", None)
        question = None
        if index is not None and index < len(self._questions):
            current = self._questions[index]
            question = {
                "id": current.id,
                "text": current.text,
                "category": current.category,
                "type": current.type.value,
                "image": current.image,
            }
        return SessionSnapshot(
            session_id=self.session_id,
            state=state_name(state),
            stage=state.stage.value if isinstance(state, CollectingProfile) else None,
            question_index=index,
            total_questions=len(self._questions) or None,
            question=question,
            transcript=self._transcript,
            is_speaking=self._speech.is_speaking,
            is_listening=self._speech.is_listening,
            answers_recorded=len(self._answers),
            result_id=self._result.id if self._result else None,
            message=state.message if isinstance(state, Failed) else None,
            terminal=self._finished,
        )


def _failure_message(exc: Exception) -> str:
    if isinstance(exc, ProfileCollectionExhausted):
        return prompts.PROFILE_EXHAUSTED
    return str(exc) or prompts.UNKNOWN_ERROR


__all__ = ["SessionController"]
