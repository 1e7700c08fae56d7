"""Pytest configuration and fixtures for energy estimator tests."""

import os

# Keep the app's own engine away from the working directory
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AZURE_SUBSCRIPTION_ID", "")

from datetime import datetime, timezone
from typing import AsyncGenerator, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_lookup_cache, get_report_sink, get_resource_provider
from app.core.database import Base
from app.core.rate_limit import limiter
from app.main import app
from app.models.energy_report import EnergyReport  # noqa: F401
from app.providers.base import (
    DiscoveryError,
    ResourceData,
    ResourceGroupData,
    ResourceLookupError,
    ResourceProviderBase,
)
from app.schemas.energy import EnergyReportCreate
from app.services.lookup_cache import ResourceLookupCache
from app.services.resource_classifier import ResourceClassifier

# Use SQLite in-memory database for tests (faster and no setup needed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SUBSCRIPTION = "/subscriptions/11111111-2222-3333-4444-555555555555"
PAYMENT_APP_ID = f"{SUBSCRIPTION}/resourceGroups/rg-payment/providers/Microsoft.Web/sites/payment-api"
SESSIONS_APP_ID = f"{SUBSCRIPTION}/resourceGroups/rg-sessions/providers/Microsoft.Web/sites/sessions-api"
SESSIONS_DB_ID = (
    f"{SUBSCRIPTION}/resourceGroups/rg-sessions/providers/Microsoft.Sql/servers/sessions-sql"
    "/databases/sessions"
)


class FakeProvider(ResourceProviderBase):
    """
    Scriptable provider for tests.

    Every App Service resolves to ``default_sku`` and every database to
    ``default_db_tier`` unless overridden per identifier. Calls are counted.
    """

    def __init__(
        self,
        default_sku: str | None = "B1",
        default_db_tier: str | None = "Standard",
        creation_dates: dict[str, datetime] | None = None,
        resource_groups: list[ResourceGroupData] | None = None,
        fail_lookups: bool = False,
        fail_discovery: bool = False,
        connected: bool = True,
    ) -> None:
        self.subscription_id = "11111111-2222-3333-4444-555555555555"
        self.default_sku = default_sku
        self.default_db_tier = default_db_tier
        self.skus: dict[str, str | None] = {}
        self.creation_dates = creation_dates or {}
        self.resource_groups = resource_groups or []
        self.fail_lookups = fail_lookups
        self.fail_discovery = fail_discovery
        self.connected = connected
        self.sku_calls = 0
        self.tier_calls = 0
        self.creation_calls = 0

    async def test_connection(self) -> bool:
        return self.connected

    async def list_resources(self) -> list[ResourceData]:
        if self.fail_discovery:
            raise DiscoveryError("listing failed")
        return [r for group in self.resource_groups for r in group.resources]

    async def list_resource_groups(self) -> list[ResourceGroupData]:
        if self.fail_discovery:
            raise DiscoveryError("listing failed")
        return list(self.resource_groups)

    async def get_app_service_plan_sku(self, resource_id: str) -> str | None:
        self.sku_calls += 1
        if self.fail_lookups:
            raise ResourceLookupError("plan lookup failed")
        return self.skus.get(resource_id, self.default_sku)

    async def get_database_sku_tier(self, resource_id: str) -> str | None:
        self.tier_calls += 1
        if self.fail_lookups:
            raise ResourceLookupError("database lookup failed")
        return self.skus.get(resource_id, self.default_db_tier)

    async def get_creation_date(self, resource_id: str) -> datetime | None:
        self.creation_calls += 1
        if self.fail_lookups:
            raise ResourceLookupError("creation date lookup failed")
        return self.creation_dates.get(resource_id)


class RecordingSink:
    """Report sink that keeps saved reports in memory."""

    def __init__(self, fail: Exception | None = None) -> None:
        self.saved: list[EnergyReportCreate] = []
        self.fail = fail

    async def save(self, report: EnergyReportCreate) -> None:
        if self.fail is not None:
            raise self.fail
        self.saved.append(report)


@pytest.fixture
async def engine():
    """Create async engine for tests with SQLite in-memory database."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,  # StaticPool for in-memory SQLite
        connect_args={"check_same_thread": False},  # Required for SQLite
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after tests
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        # Rollback to clean up any changes (but allows commits during test)
        await session.rollback()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def lookup_cache() -> ResourceLookupCache:
    return ResourceLookupCache()


@pytest.fixture
def classifier(fake_provider: FakeProvider, lookup_cache: ResourceLookupCache) -> ResourceClassifier:
    return ResourceClassifier(fake_provider, lookup_cache, lookup_timeout=1.0)


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def window_start() -> datetime:
    return datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def client(
    db_session: AsyncSession,
    fake_provider: FakeProvider,
    lookup_cache: ResourceLookupCache,
    recording_sink: RecordingSink,
) -> Generator[TestClient, None, None]:
    """Create a test client with database, provider and sink overrides."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_resource_provider] = lambda: fake_provider
    app.dependency_overrides[get_lookup_cache] = lambda: lookup_cache
    app.dependency_overrides[get_report_sink] = lambda: recording_sink
    limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
