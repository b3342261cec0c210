"""
Database session management.

WHY: Each invocation (identity trigger, webhook or status request) gets its
own AsyncSession and its own transaction. Sessions are never shared across
invocations; coordination happens only through conditional writes.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from wickops.core.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.DEBUG}
    # SQLite (local development) has no server-side pool to size
    if not url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
    return options


engine = create_async_engine(
    settings.async_database_url, **_engine_options(settings.async_database_url)
)

# expire_on_commit=False keeps ORM rows readable after the per-request commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Commits when the handler returns. Any exception rolls the transaction
    back and propagates, so upstream retries see a 5xx and redeliver.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
