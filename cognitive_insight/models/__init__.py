"""SQLAlchemy models."""

from .base import Base
from .test_result import TestResultRecord  # noqa: F401

__all__ = [
    "Base",
    "TestResultRecord",
]
