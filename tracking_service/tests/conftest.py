"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from tracking_service.app.main import app
from tracking_service.app.core.config import Settings
from tracking_service.app.core.redis_client import get_redis
from tracking_service.app.db.session import get_db, Base
from tracking_service.app.models.catalog import RouteRecord, VehicleRecord
from tracking_service.app.models.enums import VehicleStatus
from tracking_service.app.schemas.position import RouteSummary
from tracking_service.app.services.catalog import InMemoryRouteCatalog, InMemoryVehicleCatalog
from tracking_service.app.services.store import GeospatialStore
from tracking_service.tests.factories import make_vehicle

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture
def test_settings():
    """Settings with defaults, independent of the process environment."""
    return Settings(_env_file=None)


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Shared session for fixture data creation and direct service tests
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session, test_settings):
    return GeospatialStore(db_session, test_settings)


@pytest.fixture
def vehicle_catalog():
    return InMemoryVehicleCatalog([
        make_vehicle("bus-001"),
        make_vehicle("bus-002"),
        make_vehicle("bus-003", status=VehicleStatus.MAINTENANCE),
    ])


@pytest.fixture
def route_catalog():
    return InMemoryRouteCatalog([
        RouteSummary(id="route-138", name="Pettah - Homagama", route_number="138",
                     origin="Pettah", destination="Homagama"),
    ])


@pytest.fixture
def redis_client():
    return MockRedis()


@pytest.fixture
def apply_overrides(session_factory, redis_client):
    """Point the app at the per-test database and the fake Redis."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return redis_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client(apply_overrides):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def seeded_catalog(db_session):
    """Catalog mirror rows used by the HTTP tests."""
    db_session.add_all([
        VehicleRecord(id="bus-001", registration_number="NB-1234", capacity=54, status=VehicleStatus.ACTIVE),
        VehicleRecord(id="bus-002", registration_number="NC-5678", capacity=54, status=VehicleStatus.ACTIVE),
        VehicleRecord(id="bus-003", registration_number="ND-9012", capacity=35, status=VehicleStatus.MAINTENANCE),
        RouteRecord(id="route-138", name="Pettah - Homagama", route_number="138",
                    origin="Pettah", destination="Homagama"),
    ])
    await db_session.commit()
