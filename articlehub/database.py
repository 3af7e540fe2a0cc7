from datetime import datetime, timezone
from typing import Awaitable, Callable

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from articlehub.config import settings
from articlehub.middleware import install_query_counter

# Deterministic constraint names keep Alembic autogenerate diffs stable.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def utcnow() -> datetime:
    """Timestamp default for created_at / updated_at columns.

    Assigned client-side so the values are available right after a flush
    without a refresh round-trip (async sessions cannot lazy-load expired
    server defaults).
    """
    return datetime.now(timezone.utc)


AFTER_COMMIT_KEY = "after_commit"


def after_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """Queue *callback* to run once *session* has committed.

    Used for side effects that must not be observable before the data is,
    such as cache invalidation.  Callbacks are dropped on rollback.
    """
    session.info.setdefault(AFTER_COMMIT_KEY, []).append(callback)


async def commit(session: AsyncSession) -> None:
    """Commit *session*, then run the callbacks queued with ``after_commit``."""
    await session.commit()
    for callback in session.info.pop(AFTER_COMMIT_KEY, []):
        await callback()


async def rollback(session: AsyncSession) -> None:
    session.info.pop(AFTER_COMMIT_KEY, None)
    await session.rollback()


async def get_db():
    """Request-scoped session; services flush, this dependency commits."""
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await rollback(session)
            raise
