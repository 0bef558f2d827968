"""Database connection and session management.

Session Guarantees:
- Every store operation opens its own short-lived session
- On successful completion the session commits
- On any exception the session is rolled back and the error re-raised
- Sessions are always closed, so concurrent operations never share one
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging
import os
import ssl

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine with connection pooling."""
    db_url = settings.database_url_async
    connect_args = {}

    # Always use SSL for cloud databases (Supabase, Neon, etc.)
    if settings.environment == "production" or "supabase" in db_url or "pooler" in db_url:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context
        # pgbouncer cannot hold prepared statements across transactions
        connect_args["prepared_statement_cache_size"] = 0
        connect_args["statement_cache_size"] = 0
        logger.info("Using SSL for database connection with pgbouncer compatibility")

    logger.info(f"Async Database URL (masked): {db_url[:40]}...")

    return create_async_engine(
        db_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=settings.database_echo,
        pool_pre_ping=True,  # Check connection health before use
        pool_recycle=300,
        pool_timeout=30,
        connect_args=connect_args,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory - creates new sessions for each unit of work."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Rows are returned to callers after commit
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a transactional session.

    Usage:
        async with session_scope(factory) as session:
            session.add(row)
            # Commit happens automatically when the block exits
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error, transaction rolled back: {e}")
            raise
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database (create tables if needed)."""
    from ..models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Close database connections."""
    await engine.dispose()


def should_create_tables(settings: Settings | None = None) -> bool:
    """Tables already exist in production; create them everywhere else."""
    settings = settings or get_settings()
    return settings.environment != "production" and os.getenv("SKIP_INIT_DB") != "1"
