"""
Database configuration and session management
"""

from typing import Optional
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy import event
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool
import logging
from contextlib import asynccontextmanager

from cinebook.config import settings
from cinebook.core.exceptions import BookingEngineError, LockContentionError

logger = logging.getLogger(__name__)

# lock_not_available, serialization_failure, deadlock_detected
LOCK_CONTENTION_SQLSTATES = frozenset({"55P03", "40001", "40P01"})

# Create async engine
if settings.is_testing or settings.DATABASE_URL.startswith("sqlite"):
    # NullPool doesn't accept pool parameters
    engine: AsyncEngine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DB_ECHO,
        poolclass=NullPool,
    )
else:
    engine: AsyncEngine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        poolclass=AsyncAdaptedQueuePool,
    )


def enable_sqlite_write_locks(async_engine: AsyncEngine) -> AsyncEngine:
    """
    Make every SQLite transaction take the database write lock up front.

    SQLite ignores FOR UPDATE and the driver defers BEGIN until the first write,
    so two transactions could both read a seat as available. BEGIN IMMEDIATE
    serializes them; a writer that cannot get the lock before the driver
    timeout fails with "database is locked", which maps to LockContentionError.
    """
    if async_engine.dialect.name != "sqlite":
        return async_engine

    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return async_engine


enable_sqlite_write_locks(engine)

# Create async session factory
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Create declarative base
Base = declarative_base()


async def init_db():
    """
    Initialize database connections
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db():
    """
    Close database connections
    """
    await engine.dispose()
    logger.info("Database connections closed")


def is_lock_contention(exc: DBAPIError) -> bool:
    """True when the driver error means another transaction holds the rows"""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in LOCK_CONTENTION_SQLSTATES:
        return True
    # SQLite has no row locks; a busy database file is its contention signal
    return "database is locked" in str(orig).lower()


class DatabaseManager:
    """
    Transaction handling for the booking engine

    Every unit of work opens its own session and transaction. Driver errors that
    signal row-lock contention are translated to LockContentionError here so
    callers never see dialect-specific exceptions.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, retry_after: Optional[int] = None):
        self.session_factory = session_factory or async_session
        self.retry_after = retry_after if retry_after is not None else settings.CONTENTION_RETRY_AFTER_SECONDS
        self.logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def transaction(self, session: AsyncSession, isolation_level: Optional[str] = None):
        """
        Context manager for explicit transaction handling on an existing session.
        Commits on successful exit and rolls back on any exception.
        """
        try:
            async with session.begin():
                # SQLite transactions are already serialized by BEGIN IMMEDIATE
                if isolation_level and session.bind.dialect.name != "sqlite":
                    # Must be the first statement so the level applies to the whole transaction
                    await session.connection(execution_options={"isolation_level": isolation_level})
                yield session
        except DBAPIError as e:
            if is_lock_contention(e):
                self.logger.warning(f"Transaction rolled back on lock contention: {e.orig}")
                raise LockContentionError(retry_after=self.retry_after) from e
            self.logger.error(f"Transaction rolled back: {type(e).__name__}: {e}")
            raise
        except BookingEngineError as e:
            self.logger.info(f"Transaction rolled back: {e.code}")
            raise
        except Exception as e:
            self.logger.error(f"Transaction rolled back: {type(e).__name__}: {e}")
            raise

    @asynccontextmanager
    async def atomic_transaction(self, isolation_level: Optional[str] = None):
        """
        Create a new session with atomic transaction
        """
        async with self.session_factory() as session:
            async with self.transaction(session, isolation_level) as tx_session:
                yield tx_session


# Create global database manager
db_manager = DatabaseManager()
