"""Schemas for result management and statistics."""

from typing import List

from pydantic import BaseModel


class RestoreResponse(BaseModel):
    restored: int


class GroupAverage(BaseModel):
    group: str
    average_score: float
    count: int


class StatisticsResponse(BaseModel):
    total_results: int
    by_age_group: List[GroupAverage]
    by_gender: List[GroupAverage]
