"""Fixtures for tests against a real PostgreSQL database.

Set ``TEST_DATABASE_URL`` to a disposable database to run them; the
``municipality_taxes`` table is created if missing and truncated before
every test.
"""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine

from taxman.core.config import Settings, get_settings
from taxman.core.logging import _state
from taxman.infrastructure.database.session import create_database_engine
from taxman.infrastructure.database.store import PostgresTaxStore, create_schema

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Skip integration tests when no database is configured."""
    if TEST_DATABASE_URL:
        return
    skip = pytest.mark.skip(reason="TEST_DATABASE_URL is not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator[None]:
    """Keep apps built in tests from adding log sinks."""
    logger.remove()
    _state.configured = True
    get_settings.cache_clear()
    yield
    logger.remove()
    get_settings.cache_clear()


@pytest.fixture
def db_settings() -> Settings:
    """Settings pointing at the test database."""
    return Settings.model_validate(
        {
            "database_config": {
                "database_url": TEST_DATABASE_URL,
                "pool_size": 2,
                "max_overflow": 0,
                "connect_max_attempts": 3,
                "connect_retry_interval": 0.5,
                "connect_timeout": 10,
            }
        }
    )


@pytest.fixture
async def engine(db_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Engine on the test database with the schema in place."""
    engine = create_database_engine(db_settings.database_config)
    await create_schema(engine, db_settings.database_config.write_timeout)
    yield engine
    await engine.dispose()


@pytest.fixture
async def store(
    engine: AsyncEngine, db_settings: Settings
) -> AsyncGenerator[PostgresTaxStore]:
    """An empty tax store."""
    tax_store = PostgresTaxStore(engine, db_settings.database_config)
    await tax_store.truncate()
    yield tax_store
    await tax_store.close()
