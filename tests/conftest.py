"""Shared test fixtures: file-backed async SQLite, seeded users and a test client.

Invariants:
    - Every test gets a fresh SQLite database under tmp_path
    - Requests authenticate with real JWTs; get_db is overridden so each
      request gets its own session on the test database
    - The rate guard runs on a fake clock the test advances explicitly
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import date, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskflow.config import TestingConfig
from taskflow.core.auth import create_access_token
from taskflow.database import get_db
from taskflow.main import create_app
from taskflow.models import Base, Project, User
from taskflow.models.enums import ProjectStatus, RoleType
from taskflow.services.notification_service import get_notifier
from taskflow.services.rate_limiter import BucketRegistry, RateGuard


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Keeps messages in memory instead of sending them."""

    def __init__(self, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP unavailable")
        self.sent.append((to, subject, body))


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def founder(db):
    user = User(email="founder@example.com", full_name="Fay Founder",
                role_type=RoleType.FOUNDER.value, enabled=True)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def employee(db):
    user = User(email="emma@example.com", full_name="Emma Employee",
                role_type=RoleType.EMPLOYEE.value, enabled=True)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def outsider(db):
    user = User(email="oscar@example.com", full_name="Oscar Outsider",
                role_type=RoleType.EMPLOYEE.value, enabled=True)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def project(db, founder, today):
    project = Project(
        name="Apollo",
        status=ProjectStatus.ACTIVE.value,
        start_date=today - timedelta(days=30),
        founder=founder,
    )
    db.add(project)
    await db.commit()
    return project


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_guard(clock):
    return RateGuard(BucketRegistry(capacity=10, refill_tokens=10, interval=60.0, clock=clock))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)


@pytest.fixture
async def app(session_factory, rate_guard, notifier):
    application = create_app(TestingConfig(), rate_guard=rate_guard)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_notifier] = lambda: notifier
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}
    return _headers
