"""Database configuration and session management."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from cognitive_insight.config.settings import settings

# Import models so they are attached to Base.metadata before table creation
from cognitive_insight.models import Base  # noqa: F401 - ensures metadata is registered
from cognitive_insight.models import test_result  # noqa: F401

logger = logging.getLogger(__name__)


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create an async engine with environment-appropriate pooling."""

    database_url = url or settings.database.url
    engine_options: dict[str, Any] = {
        "echo": False,
        "future": True,
    }

    if not database_url.startswith("sqlite"):
        engine_options["pool_pre_ping"] = True

    if settings.database.serverless or settings.debug:
        # Disable pooling when working with serverless databases (or in debug).
        engine_options["poolclass"] = NullPool

    return create_async_engine(database_url, **engine_options)


engine: AsyncEngine = create_engine()

SessionFactory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def init_models(target: AsyncEngine | None = None) -> None:
    """Create database tables if they do not exist."""

    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Ensured database tables.")


async def dispose_engine() -> None:
    """Dispose of the engine and release pooled connections."""

    await engine.dispose()
