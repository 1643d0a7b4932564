"""
Idea Lab – Async SQLAlchemy engine, session, and declarative base.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import wraps

from sqlalchemy import event
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from idealab.config import settings
from idealab.core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

# ── Engine ──
engine_kwargs = {
    "echo": settings.DEBUG,
    "future": True,
}

# If using PostgreSQL behind PgBouncer (transaction mode), disable prepared
# statement caching because it is not supported there.
if "postgresql" in settings.DATABASE_URL:
    engine_kwargs["connect_args"] = {"statement_cache_size": 0}

engine = create_async_engine(
    settings.DATABASE_URL,
    **engine_kwargs
)


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE CASCADE unless the pragma is set per connection."""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)

# ── Session factory ──
async_session = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Declarative base ──
class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp. Lock expiries are stored and compared in this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ── Dependency for FastAPI routes ──
async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async database session, auto-closed on exit."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def transactional(func):
    """
    Transaction decorator for async store operations.

    The wrapped coroutine receives an ``AsyncSession`` (positionally, after
    ``self`` for methods, or as ``db=``). On success the session is committed;
    on any exception it is rolled back and the exception re-raised.

    Driver-level failures other than integrity conflicts are re-raised as
    ``StoreUnavailable`` so callers can tell them apart from domain rejections.
    Integrity conflicts propagate unchanged; callers that expect a unique-key
    race (e.g. a double join) handle them.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        db = kwargs.get("db")
        if db is None:
            db = next((arg for arg in args if isinstance(arg, AsyncSession)), None)

        if db is None:
            raise ValueError(
                f"@transactional requires an AsyncSession argument in {func.__name__}"
            )

        try:
            result = await func(*args, **kwargs)
            await db.commit()
            return result
        except IntegrityError:
            await db.rollback()
            raise
        except DBAPIError as e:
            logger.error("Transaction failed in %s: %s", func.__name__, e, exc_info=True)
            await db.rollback()
            raise StoreUnavailable(str(e.orig) if e.orig else str(e)) from e
        except Exception:
            await db.rollback()
            raise

    return wrapper
