"""
Shared fixtures for the Idea Lab tests.

Every test gets a fresh in-memory SQLite database, a controllable clock for
lock expiry, and a transport that records published events instead of
sending them anywhere.
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from idealab.config import BrainwritingRules
from idealab.core.join import JoinCoordinator
from idealab.core.locks import LockManager
from idealab.core.store import SessionStore
from idealab.core.turns import TurnSequencer
from idealab.database import Base, enable_sqlite_foreign_keys
from idealab.models import User
from idealab.services.events import EventPublisher


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingTransport:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published = []

    async def publish(self, topic, data):
        if self.fail:
            raise ConnectionError("transport down")
        self.published.append((topic, data))
        return 1

    async def ping(self):
        return True

    async def close(self):
        pass

    def types(self, topic=None):
        return [
            data["event"]["type"]
            for published_topic, data in self.published
            if topic is None or published_topic == topic
        ]


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db):
    people = [User(email=f"user{i}@example.com", name=f"User {i}") for i in range(1, 9)]
    db.add_all(people)
    await db.commit()
    # Plain records: a rolled-back store call expires every ORM instance in the session.
    return [SimpleNamespace(id=u.id, email=u.email, name=u.name) for u in people]


# ---------------------------------------------------------------------------
# Core services
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rules():
    return BrainwritingRules(max_participants=6, row_budget=6, columns=3, lock_ttl=timedelta(minutes=10))


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def publisher(transport):
    return EventPublisher(transport)


@pytest.fixture
def locks(clock):
    return LockManager(clock)


@pytest.fixture
def store(rules, locks, publisher):
    return SessionStore(rules, locks, TurnSequencer(rules, locks), publisher)


@pytest.fixture
def coordinator(store):
    return JoinCoordinator(store)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def api(session_factory, store, publisher):
    """Factory for httpx clients signed in as a given user, wired to the test database."""
    from idealab.database import get_db
    from idealab.dependencies import get_publisher, get_session_factory, get_store
    from idealab.main import app
    from idealab.routers.auth import COOKIE_KEY, create_access_token

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    clients = []

    def make(user=None) -> AsyncClient:
        cookies = {}
        if user is not None:
            cookies[COOKIE_KEY] = create_access_token({"sub": str(user.id)})
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test", cookies=cookies)
        clients.append(client)
        return client

    yield make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()
