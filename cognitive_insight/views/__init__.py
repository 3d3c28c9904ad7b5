"""Pydantic schemas used as views by the HTTP controllers."""

from .common import ErrorResponse
from .results import GroupAverage, RestoreResponse, StatisticsResponse
from .sessions import SessionStartResponse

__all__ = [
    "ErrorResponse",
    "GroupAverage",
    "RestoreResponse",
    "SessionStartResponse",
    "StatisticsResponse",
]
