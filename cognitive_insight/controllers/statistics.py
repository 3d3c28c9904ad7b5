"""Aggregate score statistics over all stored results."""

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from fastapi import APIRouter

from cognitive_insight.domain.models import TestResult
from cognitive_insight.views import GroupAverage, StatisticsResponse

from .dependencies import ResultRepositoryDep

router = APIRouter(prefix="/statistics", tags=["statistics"])


def average_by(results: Iterable[TestResult], key) -> List[GroupAverage]:
    """Average total score per group label, sorted by label."""

    buckets: Dict[str, Tuple[int, int]] = defaultdict(lambda: (0, 0))
    for result in results:
        label = key(result)
        total, count = buckets[label]
        buckets[label] = (total + result.total_score, count + 1)
    return [
        GroupAverage(group=label, average_score=round(total / count, 2), count=count)
        for label, (total, count) in sorted(buckets.items())
    ]


@router.get("", response_model=StatisticsResponse)
async def get_statistics(repository: ResultRepositoryDep) -> StatisticsResponse:
    results = await repository.list_all()
    return StatisticsResponse(
        total_results=len(results),
        by_age_group=average_by(results, lambda r: r.user_profile.age_group.value),
        by_gender=average_by(results, lambda r: r.user_profile.gender.value),
    )
