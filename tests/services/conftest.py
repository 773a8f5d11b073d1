"""Service test fixtures - async DB, record store, event bus and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - db_manager and event_bus module singletons patched for the app under test
    - Workflow clocks are pinned through the Clock fixture
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from wealthlink.core.records import UserRecord
from wealthlink.db.base import Base
from wealthlink.infrastructure.database import get_db, DatabaseSessionManager
from wealthlink.infrastructure.event_bus import EventBus
from wealthlink.infrastructure.locks import KeyedLocks
from wealthlink.infrastructure.repositories import SqlRecordStore
import wealthlink.infrastructure.database as db_module
import wealthlink.infrastructure.event_bus as bus_module
import wealthlink.models  # noqa: F401
from wealthlink.main import app
from tests.conftest import NOW, make_user


class Clock:
    """Callable clock a test can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int) -> None:
        self.now = self.now + timedelta(days=days)


class RecordingBus(EventBus):
    """EventBus that also keeps every published event for assertions."""

    def __init__(self):
        super().__init__()
        self.published: list[tuple[str, str, object]] = []

    def publish(self, channel, event_name, payload):
        self.published.append((channel, event_name, payload))
        super().publish(channel, event_name, payload)

    def events(self, channel: str) -> list[str]:
        return [name for ch, name, _ in self.published if ch == channel]


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def store(test_db) -> SqlRecordStore:
    return SqlRecordStore(test_db)


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture
def seed_user(store):
    """Persist a user built by make_user(**overrides)."""
    counter = {"n": 0}

    async def _seed(**overrides) -> UserRecord:
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "email": f"member{n}@example.com",
            "phone": f"0803000{n:04d}",
            "referral_code": f"MEMB-{n:06d}",
        }
        fields.update(overrides)
        user = make_user(**fields)
        await store.users.upsert(user)
        await store.commit()
        return user

    return _seed


@pytest.fixture
async def client(test_engine, test_session_factory, bus):
    """FastAPI test client with DB and event bus overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    original_bus = bus_module.event_bus
    bus_module.event_bus = bus

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    bus_module.event_bus = original_bus
