"""SQLAlchemy model for completed test results."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer, String

from cognitive_insight.models.base import Base


class TestResultRecord(Base):
    __tablename__ = "test_results"
    __test__ = False

    id = Column(
        String(32),
        primary_key=True,
        nullable=False,
    )
    user_name = Column(
        String(100),
        nullable=False,
    )
    gender = Column(
        String(10),
        nullable=False,
        index=True,
    )
    age_group = Column(
        String(20),
        nullable=False,
        index=True,
    )
    total_score = Column(
        Integer,
        nullable=False,
    )
    answers = Column(
        JSON,
        nullable=False,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
