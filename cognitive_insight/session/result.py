"""Build the immutable TestResult and hand it to persistence."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Sequence

from cognitive_insight.application.interfaces import ResultRepositoryInterface
from cognitive_insight.domain.models import Answer, Question, TestResult, UserProfile

from .errors import AnswerOrderError

logger = logging.getLogger("cognitive_insight.session")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def assemble_result(
    profile: UserProfile,
    questions: Sequence[Question],
    answers: Sequence[Answer],
    *,
    clock: Callable[[], datetime] = utc_now,
) -> TestResult:
    """Freeze profile and answers into a result; every question needs exactly one answer."""

    expected_ids = [question.id for question in questions]
    recorded_ids = [answer.question_id for answer in answers]
    if recorded_ids != expected_ids:
        raise AnswerOrderError(
            f"Answers {recorded_ids} do not match the question sequence {expected_ids}."
        )
    return TestResult(
        id=uuid.uuid4().hex,
        user_profile=profile,
        answers=tuple(answers),
        total_score=sum(answer.score for answer in answers),
        created_at=clock(),
    )


async def hand_off(result: TestResult, repository: ResultRepositoryInterface) -> None:
    await repository.save(result)
    logger.info(
        "Result %s saved for %s (total=%s)",
        result.id,
        result.user_profile.name,
        result.total_score,
    )


__all__ = ["assemble_result", "hand_off", "utc_now"]
