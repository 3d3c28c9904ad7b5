"""Answer evaluation through Bedrock with a local keyword fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from pydantic import ValidationError

from cognitive_insight.application.interfaces import AnswerEvaluatorInterface
from cognitive_insight.config.settings import BedrockConfig, settings
from cognitive_insight.domain.models import Evaluation, Question
from cognitive_insight.services.llm_client import BedrockLlmClient, LlmInvocationError
from cognitive_insight.services.response_contract import (
    EvaluationResponse,
    ResponseContractError,
)
from cognitive_insight.telemetry import observe_evaluation

logger = logging.getLogger(__name__)

_MAX_JSON_RETRIES = 2  # Extra attempts when the model returns invalid JSON.

CORRECT_EXPLANATION = "정답입니다."
INCORRECT_EXPLANATION = "정답과 다릅니다."

SYSTEM_PROMPT = (
    "당신은 인지 기능 선별 검사의 채점자입니다. 사용자의 답변이 정답인지 판단하세요. "
    "표현의 사소한 차이는 허용하되 핵심 의미는 맞아야 합니다. "
    "계산 문항이나 특정 기억 문항은 정확히 일치해야 합니다. "
    '반드시 {"score": 0 또는 1, "explanation": "한국어 한 문장 설명"} 형식의 JSON만 출력하세요.'
)


class EvaluationError(RuntimeError):
    """Raised when no valid verdict could be obtained from the model."""


def build_user_prompt(question: Question, transcript: str) -> str:
    return (
        f'- 질문: "{question.text}"\n'
        f'- 기대 정답: "{question.expected_answer}"\n'
        f'- 사용자 답변: "{transcript}"\n\n'
        "사용자의 답변이 정답입니까?"
    )


def keyword_evaluation(question: Question, transcript: str) -> Evaluation:
    """Score by case-insensitive containment of the expected answer."""

    is_correct = question.expected_answer.lower() in transcript.lower()
    return Evaluation(
        score=1 if is_correct else 0,
        explanation=CORRECT_EXPLANATION if is_correct else INCORRECT_EXPLANATION,
    )


class BedrockAnswerEvaluator(AnswerEvaluatorInterface):
    """Judge answers with a Bedrock model; keyword matching when Bedrock is off."""

    def __init__(
        self,
        client: Optional[BedrockLlmClient] = None,
        config: Optional[BedrockConfig] = None,
    ) -> None:
        self._config = config or settings.bedrock
        self._client = client or BedrockLlmClient(self._config)

    async def evaluate(self, question: Question, transcript: str) -> Evaluation:
        if not self._client.is_configured:
            return keyword_evaluation(question, transcript)

        started = time.perf_counter()
        failed = True
        try:
            evaluation = await asyncio.wait_for(
                self._judge(question, transcript),
                timeout=self._config.timeout_seconds,
            )
            failed = False
            return evaluation
        except asyncio.TimeoutError as exc:
            raise EvaluationError(
                f"Evaluator timed out after {self._config.timeout_seconds:g} seconds."
            ) from exc
        except (LlmInvocationError, ResponseContractError) as exc:
            raise EvaluationError(str(exc)) from exc
        finally:
            observe_evaluation(time.perf_counter() - started, failed)

    async def _judge(self, question: Question, transcript: str) -> Evaluation:
        user_prompt = build_user_prompt(question, transcript)
        for attempt in range(_MAX_JSON_RETRIES + 1):
            raw_response = await self._client.invoke(
                system_prompt=SYSTEM_PROMPT,
                user_prompt=user_prompt,
            )
            if not raw_response:
                raise ResponseContractError("LLM returned an empty response.")

            logger.debug(
                "Raw evaluator response question=%s attempt=%s: %s",
                question.id,
                attempt + 1,
                raw_response[:500],
            )
            try:
                verdict = EvaluationResponse.from_json(raw_response)
            except ValidationError as exc:
                logger.warning(
                    "Evaluator produced invalid JSON question=%s attempt=%s: %s",
                    question.id,
                    attempt + 1,
                    exc,
                )
                if attempt < _MAX_JSON_RETRIES:
                    continue
                raise ResponseContractError(
                    "The model returned invalid JSON even after retrying."
                ) from exc
            return Evaluation(score=verdict.score, explanation=verdict.explanation)

        raise ResponseContractError("No valid evaluator response was obtained.")


def get_answer_evaluator() -> BedrockAnswerEvaluator:
    return BedrockAnswerEvaluator()


__all__ = [
    "BedrockAnswerEvaluator",
    "EvaluationError",
    "build_user_prompt",
    "get_answer_evaluator",
    "keyword_evaluation",
]
