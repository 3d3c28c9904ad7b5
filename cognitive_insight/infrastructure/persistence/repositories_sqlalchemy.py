from datetime import timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cognitive_insight.application.interfaces import ResultRepositoryInterface
from cognitive_insight.domain.models import Answer, TestResult, UserProfile
from cognitive_insight.models.test_result import TestResultRecord


class ResultRepositoryError(RuntimeError):
    """Raised when results cannot be read from or written to the database."""


def _to_record(result: TestResult) -> TestResultRecord:
    return TestResultRecord(
        id=result.id,
        user_name=result.user_profile.name,
        gender=result.user_profile.gender.value,
        age_group=result.user_profile.age_group.value,
        total_score=result.total_score,
        answers=[answer.model_dump(mode="json", by_alias=True) for answer in result.answers],
        created_at=result.created_at,
    )


def _to_domain(record: TestResultRecord) -> TestResult:
    created_at = record.created_at
    if created_at.tzinfo is None:
        # SQLite drops the offset; values are always written in UTC.
        created_at = created_at.replace(tzinfo=timezone.utc)
    return TestResult(
        id=record.id,
        user_profile=UserProfile(
            name=record.user_name,
            gender=record.gender,
            age_group=record.age_group,
        ),
        answers=tuple(Answer.model_validate(item) for item in record.answers),
        total_score=record.total_score,
        created_at=created_at,
    )


class SqlAlchemyResultRepository(ResultRepositoryInterface):
    """SQLAlchemy implementation of the result repository"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save(self, result: TestResult) -> None:
        async with self._session_factory() as session:
            session.add(_to_record(result))
            await self._commit(session, f"save result {result.id}")

    async def list_all(self) -> List[TestResult]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(TestResultRecord).order_by(TestResultRecord.created_at.desc())
            )
            return [_to_domain(record) for record in rows.scalars().all()]

    async def get_by_id(self, result_id: str) -> Optional[TestResult]:
        async with self._session_factory() as session:
            record = await session.get(TestResultRecord, result_id)
            return _to_domain(record) if record else None

    async def replace_all(self, results: Sequence[TestResult]) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(TestResultRecord))
            session.add_all([_to_record(result) for result in results])
            await self._commit(session, f"replace {len(results)} results")

    @staticmethod
    async def _commit(session: AsyncSession, action: str) -> None:
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise ResultRepositoryError(f"Could not {action}: {exc}") from exc


def get_result_repository() -> SqlAlchemyResultRepository:
    from cognitive_insight.database import SessionFactory

    return SqlAlchemyResultRepository(SessionFactory)


__all__ = [
    "ResultRepositoryError",
    "SqlAlchemyResultRepository",
    "get_result_repository",
]
