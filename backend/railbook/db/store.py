"""
InventoryStore: the transactional datastore behind the booking core.

WRITE TRANSACTIONS
==================

Every booking and cancellation runs inside `InventoryStore.transaction()`,
an all-or-nothing unit of work on its own connection:

  - SQLite: the driver's implicit BEGIN is disabled and write transactions
    open with BEGIN IMMEDIATE, taking the database's RESERVED lock up front.
    A second writer waits (busy timeout) instead of reading availability that
    is about to change. Read snapshots open with a plain deferred BEGIN and
    never wait on writers (WAL journal).
  - PostgreSQL: READ COMMITTED. Services lock the contended row with
    SELECT ... FOR UPDATE and decrement with a guarded UPDATE, whose WHERE
    clause is re-evaluated after any lock wait.

Errors leaving a transaction are translated into domain errors:

  unique / primary key violation          -> DuplicateKey
  OperationalError, serialization/deadlock -> TransientFailure (retryable)
  anything else (CHECK, FK, driver faults) -> StorageFailure

Domain errors raised inside the block roll the transaction back and propagate
unchanged.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from railbook.core.config import Settings, get_settings
from railbook.core.exceptions import (
    DuplicateKey,
    RailbookError,
    StorageFailure,
    TransientFailure,
)
from railbook.core.logging import get_logger
from railbook.db.base import Base
import railbook.models  # noqa: F401 - register tables on Base.metadata

logger = get_logger(__name__)

# Execution option marking a connection as the start of a write transaction
WRITE_OPTION = "railbook_write"

# PostgreSQL SQLSTATEs: serialization failure, deadlock, lock not available
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
UNIQUE_VIOLATION_SQLSTATE = "23505"
FOREIGN_KEY_VIOLATION_SQLSTATE = "23503"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    # SQLite reports primary key and unique violations the same way
    return "UNIQUE constraint failed" in str(exc.orig)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == FOREIGN_KEY_VIOLATION_SQLSTATE:
        return True
    return "FOREIGN KEY constraint failed" in str(exc.orig)


def translate_error(exc: SQLAlchemyError) -> RailbookError:
    """Map a SQLAlchemy failure onto the domain error hierarchy."""
    if isinstance(exc, IntegrityError):
        if is_unique_violation(exc):
            return DuplicateKey("Record violates a uniqueness constraint")
        return StorageFailure("Record violates an integrity constraint")
    if isinstance(exc, OperationalError) or (
        isinstance(exc, DBAPIError) and _sqlstate(exc) in RETRYABLE_SQLSTATES
    ):
        return TransientFailure("The booking system is busy. Please try again.")
    return StorageFailure("Unexpected storage error")


def build_engine(settings: Settings) -> AsyncEngine:
    url = make_url(settings.DATABASE_URL)

    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(
            url,
            echo=settings.DEBUG,
            connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT},
        )
        _configure_sqlite(engine)
        return engine

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def _configure_sqlite(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Take BEGIN away from the driver; _on_begin emits our own
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(WRITE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class InventoryStore:
    """
    Owns the engine and hands out sessions.

    Constructed explicitly and passed to BookingEngine / ScheduleAdmin; there
    is no module-level instance.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "InventoryStore":
        return cls(build_engine(settings or get_settings()))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Write unit of work: commits when the block exits cleanly, rolls back
        on any exception (including domain errors raised by the caller).
        """
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    await session.connection(execution_options={WRITE_OPTION: True})
                    yield session
            except RailbookError:
                raise
            except SQLAlchemyError as exc:
                error = translate_error(exc)
                logger.warning(
                    "transaction_failed",
                    error_code=error.code,
                    error=str(exc),
                )
                raise error from exc

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[AsyncSession]:
        """Read-only session. Never commits; staleness is tolerated."""
        async with self._session_factory() as session:
            try:
                yield session
            except RailbookError:
                raise
            except SQLAlchemyError as exc:
                error = translate_error(exc)
                logger.warning("snapshot_failed", error_code=error.code, error=str(exc))
                raise error from exc

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
