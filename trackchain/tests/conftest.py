"""
Centralized Test Configuration.
"""

import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from trackchain.app.main import app
from trackchain.app.db.session import get_db, Base
import trackchain.app.core.redis_client as redis_client_module
from trackchain.app.models.enums import OrgRole
from trackchain.app.domain.catalog.catalog_service import CatalogService
from trackchain.app.domain.registry.checkpoint_registry import CheckpointRegistry

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

from trackchain.tests.factories import MANUFACTURER, CARRIER_A, WAREHOUSE_B, PHARMACY_C, ADMIN_ORG, make_token


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

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}

# Redis Fixture (Session Scope)
@pytest.fixture(scope="session")
async def redis_client_session():
    return MockRedis()

@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session.
    Global override is safer here than per-test override to avoid app state flux.
    """

    # Patch the global redis client used by token revocation checks
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield

    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client

@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for an organization and role."""
    def _headers(org_id: str, role: OrgRole = OrgRole.SUPPLIER) -> dict:
        return {"Authorization": f"Bearer {make_token(org_id, role)}"}
    return _headers


@pytest.fixture
def manufacturer_headers(auth_headers):
    return auth_headers(MANUFACTURER, OrgRole.MANUFACTURER)


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers(ADMIN_ORG, OrgRole.ADMIN)


@pytest.fixture
async def catalog():
    """
    One category → product → batch → package with 10 units available.

    Built in its own session: the returned rows stay readable after a test
    rolls back `db_session`.
    """
    async with TestingSessionLocal() as setup:
        return await _build_catalog(setup)


async def _build_catalog(db_session) -> dict:
    category = await CatalogService.create_category(db_session, "Vaccines", actor_org_id=MANUFACTURER)
    product = await CatalogService.create_product(
        db_session,
        category_id=category.id,
        name="Influenza Vaccine",
        manufacturer_org_id=MANUFACTURER,
        required_start_temp=2.0,
        required_end_temp=8.0,
    )
    start = datetime(2026, 1, 5, 8, 0, tzinfo=timezone.utc)
    batch = await CatalogService.create_batch(
        db_session,
        product_id=product.id,
        manufacturer_org_id=MANUFACTURER,
        facility="Plant 1",
        production_start=start,
        production_end=start + timedelta(hours=10),
        quantity_produced=100,
    )
    package = await CatalogService.create_package(
        db_session,
        batch_id=batch.id,
        package_code="PKG-1",
        quantity=10,
        actor_org_id=MANUFACTURER,
    )
    await db_session.commit()
    return {"category": category, "product": product, "batch": batch, "package": package}


@pytest.fixture
async def checkpoints():
    """CP-A (carrier A) → CP-B (warehouse B) → CP-C (pharmacy C), in their own session."""
    async with TestingSessionLocal() as setup:
        return await _build_checkpoints(setup)


async def _build_checkpoints(db_session) -> dict:
    cp_a = await CheckpointRegistry.create(
        db_session, owner_org_id=CARRIER_A, name="CP-A", address="Dock 4, Colombo, Western, Sri Lanka",
        latitude=6.93, longitude=79.85, city="Colombo", state="Western", country="Sri Lanka",
    )
    cp_b = await CheckpointRegistry.create(
        db_session, owner_org_id=WAREHOUSE_B, name="CP-B", address="Kandy, Central, Sri Lanka",
        latitude=7.29, longitude=80.63, city="Kandy", state="Central", country="Sri Lanka",
    )
    cp_c = await CheckpointRegistry.create(
        db_session, owner_org_id=PHARMACY_C, name="CP-C", address="Galle, Southern, Sri Lanka",
        latitude=6.05, longitude=80.22,
    )
    await db_session.commit()
    return {"a": cp_a, "b": cp_b, "c": cp_c}


@pytest.fixture
def session_factory():
    """Factory for independent sessions (concurrency tests)."""
    return TestingSessionLocal
