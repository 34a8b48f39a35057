"""Shared fixtures for unit tests."""

import datetime
import os
from collections.abc import AsyncGenerator, Callable, Generator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from loguru import logger
from pytest_mock import MockerFixture, MockType

from taxman.api.dependencies import get_tax_store
from taxman.api.main import create_app
from taxman.core.config import Settings, TaxConfig, get_settings
from taxman.core.context import RequestContext
from taxman.core.error_context import _get_sensitive_fields
from taxman.core.exceptions import StoreError
from taxman.core.logging import _state
from taxman.domain.models import PeriodType, TaxQuery, TaxRecord


class InMemoryTaxStore:
    """Store double keeping records in a dict keyed by record identity."""

    def __init__(self) -> None:
        self.records: dict[
            tuple[str, datetime.date, datetime.date, PeriodType], TaxRecord
        ] = {}
        self.upsert_calls = 0
        self.candidate_calls = 0
        self.fail_with: StoreError | None = None
        self.healthy = True

    async def upsert(self, record: TaxRecord) -> None:
        self.upsert_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        key = (
            record.municipality,
            record.start_date,
            record.end_date,
            record.period_type,
        )
        self.records[key] = record

    async def candidates(self, query: TaxQuery) -> list[TaxRecord]:
        self.candidate_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return [
            record
            for record in self.records.values()
            if record.municipality == query.municipality and record.covers(query.date)
        ]

    async def ping(self) -> bool:
        return self.healthy


@pytest.fixture
def fake_store() -> InMemoryTaxStore:
    """Provide an empty in-memory tax store."""
    return InMemoryTaxStore()


@pytest.fixture
def make_record() -> Callable[..., TaxRecord]:
    """Build TaxRecords with Copenhagen yearly 2024 defaults."""

    def _make(**overrides: object) -> TaxRecord:
        values: dict[str, object] = {
            "municipality": "Copenhagen",
            "tax_rate": 0.2,
            "start_date": datetime.date(2024, 1, 1),
            "end_date": datetime.date(2024, 12, 31),
            "period_type": PeriodType.YEARLY,
        }
        values.update(overrides)
        return TaxRecord.model_validate(values)

    return _make


@pytest.fixture
def tax_config() -> TaxConfig:
    """Tax configuration without a default rate."""
    return TaxConfig()


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an application built in a test."""
    return Settings(app_name="TestTaxMan", app_version="1.0.0")


@pytest.fixture
def app_factory(
    fake_store: InMemoryTaxStore,
) -> Callable[[Settings], FastAPI]:
    """Create applications backed by the in-memory store."""

    def _create(settings: Settings) -> FastAPI:
        application = create_app(settings)
        application.dependency_overrides[get_tax_store] = lambda: fake_store
        application.state.tax_store = fake_store
        return application

    return _create


@pytest.fixture
async def client(
    app_factory: Callable[[Settings], FastAPI], test_settings: Settings
) -> AsyncGenerator[AsyncClient]:
    """HTTP client for an application without a default rate."""
    transport = ASGITransport(app=app_factory(test_settings))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def client_with_default(
    app_factory: Callable[[Settings], FastAPI],
) -> AsyncGenerator[AsyncClient]:
    """HTTP client for an application whose default rate is 0.5."""
    settings = Settings(tax_config=TaxConfig(default_tax_rate=0.5))
    transport = ASGITransport(app=app_factory(settings))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide Settings built from test environment variables."""
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "3000")
    return Settings()


@pytest.fixture
def mock_uvicorn(mocker: MockerFixture) -> MockType:
    """Mock uvicorn.run to prevent server startup."""
    return mocker.patch("uvicorn.run")


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings before and after each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove application environment variables for the duration of a test."""
    env_prefixes = (
        "APP_",
        "API_",
        "ENVIRONMENT",
        "DEBUG",
        "PORT",
        "DATABASE_URL",
        "LOG_CONFIG__",
        "OBSERVABILITY_CONFIG__",
        "DATABASE_CONFIG__",
        "TAX_CONFIG__",
    )
    for key in list(os.environ):
        if key.startswith(env_prefixes):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear request context before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator[None]:
    """Keep logging marked as configured so apps built in tests add no sinks."""
    logger.remove()
    _state.configured = True
    yield
    logger.remove()
