"""PostgreSQL-backed tax record store.

``PostgresTaxStore`` implements the ``TaxRecordStore`` protocol. It owns the
engine for its whole life: ``connect`` waits for the database, creates the
schema and prebuilds the statements, and ``close`` disposes the pool.

Every operation runs in its own session under its own deadline. Driver
failures and timeouts are raised as ``StoreError`` with a message that is
safe to show to clients; the original error is kept as the cause.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Self

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.sql.expression import Executable

from taxman.core.config import DatabaseConfig, Settings
from taxman.core.error_context import sanitize_value
from taxman.core.exceptions import ConfigurationError, StoreError
from taxman.core.observability import trace_operation
from taxman.domain.models import TaxQuery, TaxRecord
from taxman.infrastructure.database.base import Base
from taxman.infrastructure.database.repository import (
    TaxRecordRepository,
    build_tax_statements,
)
from taxman.infrastructure.database.session import (
    check_database_connection,
    create_database_engine,
    create_session_factory,
    session_scope,
    wait_for_database,
)

UPSERT_FAILED_MESSAGE = "failed to add or update tax record"
LOOKUP_FAILED_MESSAGE = "failed to get tax rate"
TRUNCATE_FAILED_MESSAGE = "failed to truncate tax records"

_STORE_FAILURES = (SQLAlchemyError, OSError, TimeoutError)


async def create_schema(engine: AsyncEngine, timeout: float) -> None:
    """Create missing tables and indexes.

    Raises:
        ConfigurationError: If the schema cannot be created in time.
    """
    try:
        async with asyncio.timeout(timeout), engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    except _STORE_FAILURES as e:
        raise ConfigurationError("Failed to create database schema", cause=e) from e
    logger.info("Database schema is up to date")


class PostgresTaxStore:
    """Tax record store on a PostgreSQL ``daterange`` table.

    Args:
        engine: Engine whose pool the store takes ownership of.
        config: Database settings, for the per-operation timeouts.
        statements: Prebuilt statements keyed by logical name.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        config: DatabaseConfig,
        statements: dict[str, Executable] | None = None,
    ) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._config = config
        self._statements = statements or build_tax_statements()
        self._closed = False

    @classmethod
    async def connect(cls, settings: Settings) -> Self:
        """Open a store ready to serve requests.

        Raises:
            ConfigurationError: If the database URL is missing, the database
                stays unreachable, or the schema cannot be created.
        """
        config = settings.database_config
        engine = create_database_engine(
            config, enable_sql_logging=settings.log_config.enable_sql_logging
        )
        try:
            await wait_for_database(engine, config)
            await create_schema(engine, config.write_timeout)
        except BaseException:
            await engine.dispose()
            raise

        store = cls(engine, config)
        logger.info("Tax store ready")
        return store

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def _operation(
        self, name: str, failure_message: str, timeout: float, **attributes: str
    ) -> AsyncGenerator[TaxRecordRepository]:
        """Run one store operation in a session with a deadline and a span."""
        if self._closed:
            raise StoreError(failure_message, context={"operation": name})

        with trace_operation(f"tax_store.{name}", **attributes):
            try:
                async with (
                    asyncio.timeout(timeout),
                    session_scope(self._session_factory) as session,
                ):
                    yield self._repository(session)
            except _STORE_FAILURES as e:
                raise StoreError(
                    failure_message,
                    context={"operation": name, "timeout_seconds": timeout},
                    cause=e,
                ) from e

    def _repository(self, session: AsyncSession) -> TaxRecordRepository:
        return TaxRecordRepository(session, self._statements)

    async def upsert(self, record: TaxRecord) -> None:
        """Insert ``record`` or replace the rate of the record with its identity.

        Raises:
            StoreError: If the write fails or times out.
        """
        async with self._operation(
            "upsert",
            UPSERT_FAILED_MESSAGE,
            self._config.write_timeout,
            municipality=record.municipality,
            period_type=record.period_type.value,
        ) as repository:
            await repository.upsert(record)

    async def candidates(self, query: TaxQuery) -> list[TaxRecord]:
        """Return every record of the municipality whose interval covers the date.

        Raises:
            StoreError: If the read fails or times out.
        """
        async with self._operation(
            "candidates",
            LOOKUP_FAILED_MESSAGE,
            self._config.statement_timeout,
            municipality=query.municipality,
            date=query.date.isoformat(),
        ) as repository:
            records = await repository.find_applicable(query)

        logger.debug(
            "Found {} candidate records",
            len(records),
            municipality=query.municipality,
        )
        return records

    async def truncate(self) -> None:
        """Remove every record. Intended for tests."""
        async with self._operation(
            "truncate", TRUNCATE_FAILED_MESSAGE, self._config.write_timeout
        ) as repository:
            await repository.truncate()

    async def ping(self) -> bool:
        """Whether the database currently answers."""
        if self._closed:
            return False
        is_healthy, error = await check_database_connection(self._engine)
        if not is_healthy:
            logger.warning(
                "Database health check failed", error=sanitize_value(error)
            )
        return is_healthy

    async def close(self) -> None:
        """Dispose the connection pool. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._engine.dispose()
        except _STORE_FAILURES as e:
            logger.opt(exception=e).error("Error while closing the tax store")
        else:
            logger.info("Tax store closed")
