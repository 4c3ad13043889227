import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from partnerhub.common.clock import FixedClock
from partnerhub.common.enums import PartnerStatus, ProjectStatus, TaskPriority, TaskStatus
from partnerhub.core.analytics.schemas import PartnerSnapshot, ProjectSnapshot, TaskSnapshot
from partnerhub.db.base import Base
from partnerhub.db.models import *  # noqa: F401,F403 - ensure all models loaded

# Use in-memory SQLite for testing - remap JSONB to JSON
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# 2024-01-16 is a Tuesday
NOW = datetime(2024, 1, 16, 0, 0, tzinfo=timezone.utc)


# Make JSONB render as JSON for SQLite
@event.listens_for(Base.metadata, "before_create")
def _remap_jsonb(target, connection, **kw):
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
async def client(db_session, clock):
    from partnerhub.api.deps import get_clock, get_db
    from partnerhub.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def mock_send_email():
    """Mock the SendGrid client so no test reaches the network."""
    with patch(
        "partnerhub.integrations.sendgrid.EmailClient.send_email",
        return_value={"message_id": "mock-123", "status": "sent"},
    ) as mocked:
        yield mocked


# ---------- Snapshot builders for pure calculators ----------


@pytest.fixture
def snap():
    def project(**overrides) -> ProjectSnapshot:
        values = {
            "id": uuid.uuid4(),
            "name": "Project",
            "status": ProjectStatus.IN_PROGRESS,
            "progress": 0,
        }
        values.update(overrides)
        return ProjectSnapshot(**values)

    def task(project_id: uuid.UUID, **overrides) -> TaskSnapshot:
        values = {
            "id": uuid.uuid4(),
            "project_id": project_id,
            "title": "Task",
            "status": TaskStatus.TODO,
        }
        values.update(overrides)
        return TaskSnapshot(**values)

    def partner(**overrides) -> PartnerSnapshot:
        values = {
            "id": uuid.uuid4(),
            "name": "Partner",
            "email": "partner@example.com",
            "status": PartnerStatus.ACTIVE,
        }
        values.update(overrides)
        return PartnerSnapshot(**values)

    return SimpleNamespace(project=project, task=task, partner=partner)


# ---------- Database rows ----------


@pytest.fixture
def seed(db_session):
    from partnerhub.db.models import Partner, Project, Task, User, project_partners

    async def user(**overrides) -> User:
        values = {
            "email": f"user_{uuid.uuid4().hex[:8]}@test.com",
            "full_name": "Test User",
        }
        values.update(overrides)
        row = User(id=uuid.uuid4(), **values)
        db_session.add(row)
        await db_session.flush()
        return row

    async def partner(**overrides) -> Partner:
        values = {
            "name": "Acme Partners",
            "email": f"partner_{uuid.uuid4().hex[:8]}@test.com",
            "status": PartnerStatus.ACTIVE.value,
            "rating": 4.0,
        }
        values.update(overrides)
        row = Partner(id=uuid.uuid4(), **values)
        db_session.add(row)
        await db_session.flush()
        return row

    async def project(partners=(), **overrides) -> Project:
        values = {
            "name": "Test Project",
            "status": ProjectStatus.IN_PROGRESS.value,
            "progress": 0,
        }
        values.update(overrides)
        for key in ("budget", "actual_cost"):
            if values.get(key) is not None:
                values[key] = Decimal(str(values[key]))
        row = Project(id=uuid.uuid4(), **values)
        db_session.add(row)
        await db_session.flush()
        for p in partners:
            await db_session.execute(
                project_partners.insert().values(project_id=row.id, partner_id=p.id)
            )
        return row

    async def task(project_id: uuid.UUID, **overrides) -> Task:
        values = {
            "title": "Test Task",
            "status": TaskStatus.TODO.value,
            "priority": TaskPriority.MEDIUM.value,
        }
        values.update(overrides)
        row = Task(id=uuid.uuid4(), project_id=project_id, **values)
        db_session.add(row)
        await db_session.flush()
        return row

    return SimpleNamespace(user=user, partner=partner, project=project, task=task)

