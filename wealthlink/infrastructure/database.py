"""Database Session Manager - async engine, per-request sessions, readiness ping.

Invariants:
    - A session that exits with an exception is rolled back before it is closed
    - Driver failures leave this module only as StorageError (core/errors.py)
    - Postgres pools use pre-ping and recycling; SQLite runs on the driver's default pool

Design Decisions:
    - Singleton db_manager initialized in the lifespan, read by get_db and the
      readiness probe
    - expire_on_commit=False: records mapped from rows stay readable after commit
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from wealthlink.core.errors import StorageError
from wealthlink.db.base import Base

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are DBAPIErrors
_FAILURE_KINDS: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "A uniqueness or reference constraint was violated", "write"),
    (OperationalError, "The database is unreachable", "connect"),
    (DBAPIError, "The database driver rejected the statement", "query"),
)


def to_storage_error(exc: SQLAlchemyError, operation: str = "execute") -> StorageError:
    """Translate a SQLAlchemy failure into the domain StorageError."""
    for kind, message, kind_operation in _FAILURE_KINDS:
        if isinstance(exc, kind):
            return StorageError(message, kind_operation)
    return StorageError("Database operation failed", operation)


class DatabaseSessionManager:
    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {}
        if not database_url.startswith("sqlite"):
            engine_kwargs = {
                "pool_pre_ping": True,
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_recycle": 3600,
            }
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database session failed: {type(e).__name__}: {e}")
            raise to_storage_error(e) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_all(self) -> None:
        """Create missing tables. Local SQLite runs only; Postgres uses alembic."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Readiness ping failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one AsyncSession per request."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
