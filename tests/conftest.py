"""Shared test fixtures."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hookrelay.db.base import Base
from hookrelay.db.engine import create_db_engine
from hookrelay.db.models import SubscriptionRow
from hookrelay.services.id_generator import generate_id
# Import all models to register with Base.metadata
import hookrelay.db.models  # noqa: F401


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_db_engine("sqlite+aiosqlite:///")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_subscription(session_factory):
    """Insert a subscription row and return it."""

    async def _make(**overrides) -> SubscriptionRow:
        values = {
            "id": generate_id("whk_"),
            "workspace_id": "W1",
            "url": "https://receiver.example/hook",
            "adapter_type": "generic",
            "secret": "s3cr3t",
            "events": ["*"],
            "is_active": True,
            "silent_mode": False,
            "failure_count": 0,
            "created_by": "usr_admin",
        }
        values.update(overrides)
        async with session_factory() as session:
            row = SubscriptionRow(**values)
            session.add(row)
            await session.commit()
            return row

    return _make


class RecordingTransport(httpx.MockTransport):
    """Mock transport answering from a queue of status codes and keeping every request."""

    def __init__(self, statuses=(200,)):
        self.statuses = list(statuses)
        self.requests: list[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return httpx.Response(status, text="ok" if status < 400 else "upstream error")


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
async def http_client(transport):
    async with httpx.AsyncClient(transport=transport) as client:
        yield client


@pytest.fixture
def app(session_factory, db_engine, http_client):
    """Create a test application instance with in-memory DB."""
    from hookrelay.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.http_client = http_client
    _app.state.scheduler_task = None
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
