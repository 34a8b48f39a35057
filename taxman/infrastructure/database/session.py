"""Async database engine and session lifecycle management.

Core functionality:
- **Connection pooling**: Bounded pool (``pool_size`` idle plus ``max_overflow``)
- **Start-up ping**: Retries until the database answers or the budget runs out
- **Session scope**: Commit on success, rollback on error
- **Query monitoring**: Optional slow query logging with sanitized parameters

The engine is owned by the tax store, which creates it on start-up and
disposes it on shutdown.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from weakref import WeakKeyDictionary

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.engine.interfaces import DBAPICursor, ExecutionContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taxman.core.config import DatabaseConfig, get_settings
from taxman.core.constants import MILLISECONDS_PER_SECOND
from taxman.core.context import RequestContext
from taxman.core.error_context import (
    redact_database_url,
    sanitize_sql_params,
    sanitize_value,
)
from taxman.core.exceptions import ConfigurationError
from taxman.infrastructure.constants import (
    MAX_LOGGED_STATEMENT_LENGTH,
    POOL_RECYCLE_SECONDS,
)

_query_start_times: WeakKeyDictionary[ExecutionContext, float] = WeakKeyDictionary()


def _before_cursor_execute(
    _conn: Connection,
    _cursor: DBAPICursor,
    _statement: str,
    _parameters: dict[str, Any] | list[Any] | tuple[Any, ...] | None,
    context: ExecutionContext,
    _executemany: bool,
) -> None:
    """Record when a statement started."""
    _query_start_times[context] = time.perf_counter()


def _after_cursor_execute(
    _conn: Connection,
    cursor: DBAPICursor,
    statement: str,
    parameters: dict[str, Any] | list[Any] | tuple[Any, ...] | None,
    context: ExecutionContext,
    executemany: bool,
) -> None:
    """Log statements that ran longer than the slow query threshold."""
    log_config = get_settings().log_config

    start_time = _query_start_times.pop(context, None)
    if start_time is None:
        return
    duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
    if duration_ms < log_config.slow_query_threshold_ms:
        return

    rows_affected = getattr(cursor, "rowcount", -1)
    clean_statement = " ".join(statement.split())[:MAX_LOGGED_STATEMENT_LENGTH]

    logger.warning(
        "Slow query detected: {}... Duration: {:.2f}ms",
        clean_statement[:100],
        duration_ms,
        query=clean_statement,
        duration_ms=round(duration_ms, 2),
        rows_affected=-1 if rows_affected is None else rows_affected,
        parameters=sanitize_sql_params(parameters),
        correlation_id=RequestContext.get_correlation_id(),
        executemany=executemany,
        threshold_ms=log_config.slow_query_threshold_ms,
    )


def create_database_engine(
    config: DatabaseConfig, *, enable_sql_logging: bool = False
) -> AsyncEngine:
    """Create an async SQLAlchemy engine with a bounded connection pool.

    Args:
        config: Database settings; ``database_url`` must be set.
        enable_sql_logging: Register the slow query listeners.

    Returns:
        AsyncEngine: Configured async engine instance.

    Raises:
        ConfigurationError: If no database URL is configured.
    """
    if not config.database_url:
        raise ConfigurationError("DATABASE_URL environment variable is required")

    engine = create_async_engine(
        config.database_url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_pre_ping=config.pool_pre_ping,
        echo=config.echo,
        pool_recycle=POOL_RECYCLE_SECONDS,
        connect_args={
            "server_settings": {"jit": "off"},
            # Driver-level backstop; operations enforce their own deadlines
            "command_timeout": config.write_timeout,
        },
    )

    if enable_sql_logging:
        event.listen(engine.sync_engine, "before_cursor_execute", _before_cursor_execute)
        event.listen(engine.sync_engine, "after_cursor_execute", _after_cursor_execute)
        logger.info("Registered slow query event listeners")

    logger.info(
        "Created database engine for {} - pool_size: {}, max_overflow: {}",
        redact_database_url(config.database_url),
        config.pool_size,
        config.max_overflow,
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory bound to ``engine``."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Example:
        async with session_scope(factory) as session:
            await TaxRecordRepository(session).upsert(record)
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.debug("Database session rolled back due to error")
            raise


async def check_database_connection(engine: AsyncEngine) -> tuple[bool, str | None]:
    """Check whether the database answers a trivial query.

    Returns:
        tuple[bool, str | None]: Whether the ping succeeded, and the error
            message if it did not.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError, TimeoutError) as e:
        return False, str(e)
    else:
        return True, None


async def wait_for_database(engine: AsyncEngine, config: DatabaseConfig) -> None:
    """Ping the database until it answers.

    Makes up to ``connect_max_attempts`` attempts ``connect_retry_interval``
    seconds apart, all within ``connect_timeout`` seconds.

    Raises:
        ConfigurationError: If the database never answers.
    """
    last_error: str | None = None
    try:
        async with asyncio.timeout(config.connect_timeout):
            for attempt in range(1, config.connect_max_attempts + 1):
                is_healthy, last_error = await check_database_connection(engine)
                if is_healthy:
                    logger.info("Database is reachable (attempt {})", attempt)
                    return
                logger.warning(
                    "Database ping failed (attempt {}/{})",
                    attempt,
                    config.connect_max_attempts,
                    error=sanitize_value(last_error),
                )
                if attempt < config.connect_max_attempts:
                    await asyncio.sleep(config.connect_retry_interval)
    except TimeoutError as e:
        raise ConfigurationError(
            "Timed out waiting for the database",
            context={"timeout_seconds": config.connect_timeout},
            cause=e,
        ) from e

    raise ConfigurationError(
        "Database is unreachable",
        context={"attempts": config.connect_max_attempts, "last_error": last_error},
    )
