"""
Async engine and request-scoped sessions.

PostgreSQL (asyncpg) gets a sized connection pool. SQLite (aiosqlite, used
for tests and local runs) gets every transaction opened with
``BEGIN IMMEDIATE``: writers are serialized at BEGIN instead of failing on a
read-to-write lock upgrade halfway through a booking.
"""

from typing import Any, AsyncGenerator, Awaitable, Callable

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from airline_booking.core.config import get_settings

settings = get_settings()


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, connect_args={"timeout": 30})

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = create_session_factory(engine)

AFTER_COMMIT_KEY = "after_commit"


def after_commit(session: AsyncSession, callback: Callable[..., Awaitable[Any]], *args: Any) -> None:
    """Schedule ``callback(*args)`` to run once the request's transaction has committed."""
    session.info.setdefault(AFTER_COMMIT_KEY, []).append((callback, args))


async def run_after_commit(session: AsyncSession) -> None:
    for callback, args in session.info.pop(AFTER_COMMIT_KEY, []):
        await callback(*args)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request. Commits when the handler returns normally,
    rolls back on any exception so an operation either fully applies or
    leaves nothing behind. Callbacks registered with ``after_commit`` run
    only after a successful commit and are dropped on rollback.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            session.info.pop(AFTER_COMMIT_KEY, None)
            await session.rollback()
            raise
        await run_after_commit(session)
