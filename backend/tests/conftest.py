"""
Centralized Test Configuration.
"""

import json
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.redis_client import get_redis
from backend.app.core.jwt import create_access_token
from backend.app.core.reliability import notification_circuit_breaker
from backend.app.models.rental_enums import RentalStatus
from backend.app.schemas.rental_order import RentalOrderCreate
import backend.app.core.redis_client as redis_client_module
from backend.seed_data import seed_reference_data

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.published = []
        self.fail = False

    async def ping(self):
        return not self.fail

    async def publish(self, channel, message):
        if self.fail:
            raise ConnectionError("Redis unavailable")
        self.published.append((channel, message))
        return 1

    def events(self):
        return [json.loads(message)["event"] for _, message in self.published]


# Engine per test: every test gets a fresh in-memory database on its own loop
@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine.sync_engine, "connect", set_sqlite_pragma)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded(session_factory):
    """Reference data committed before the test runs."""
    async with session_factory() as session:
        data = await seed_reference_data(session)
        await session.commit()
    return data


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture(autouse=True)
def reset_circuit_breaker():
    notification_circuit_breaker.reset_state()
    yield
    notification_circuit_breaker.reset_state()


@pytest.fixture
async def client(session_factory, mock_redis):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    # Patch the global redis client used by the health check
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = mock_redis
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


def _auth_headers(username: str, role: str) -> dict:
    token = create_access_token(data={"sub": username, "user_id": 1, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers():
    return _auth_headers("counter.staff", "EMPLOYEE")


@pytest.fixture
def customer_headers():
    return _auth_headers("walk.in", "CUSTOMER")


@pytest.fixture
def rental_window():
    """A three-day rental starting tomorrow morning."""
    start = datetime.utcnow().replace(hour=9, minute=0, second=0, microsecond=0) + timedelta(days=1)
    return start, start + timedelta(days=2)


@pytest.fixture
def order_request(seeded, rental_window):
    """Factory for RentalOrderCreate against the seeded sedan (500,000/day)."""
    def build(**overrides) -> RentalOrderCreate:
        start, end = rental_window
        fields = {
            "customer_id": seeded["customer"].id,
            "vehicle_id": seeded["vehicle"].id,
            "employee_id": seeded["employee"].id,
            "start_date": start,
            "end_date": end,
            "pickup_location": "Noi Bai Airport",
            "return_location": "Ha Noi Depot",
            "deposit_amount": Decimal("1000000"),
            "status": RentalStatus.DRAFT,
        }
        fields.update(overrides)
        return RentalOrderCreate(**fields)
    return build


@pytest.fixture
def order_payload(order_request):
    """Same as order_request, as a JSON body."""
    def build(**overrides) -> dict:
        return order_request(**overrides).model_dump(mode="json")
    return build
