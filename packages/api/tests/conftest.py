# This project was developed with assistance from AI tools.
"""Shared fixtures for service-level tests.

``db_session`` is a fresh in-memory SQLite database (aiosqlite) built from
the ORM metadata, so the real service code runs its real SQL without a
PostgreSQL server. Email and artifact rendering are swapped for recording
doubles so tests can assert on post-commit side effects.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from rpc_db import Base, get_db
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rpc_api.main import app
from rpc_api.middleware.auth import get_current_user
from rpc_api.services import notifications, rendering, storage
from rpc_api.services.background import drain_background_tasks


class RecordingEmailDispatcher:
    def __init__(self):
        self.sent: list[tuple[str, str, dict]] = []

    async def send_email(self, template: str, recipient: str, data: dict) -> None:
        self.sent.append((template, recipient, data))

    def templates(self) -> list[str]:
        return [template for template, _, _ in self.sent]


class RecordingRenderer:
    def __init__(self):
        self.rendered: list[str] = []

    async def render_term_sheet(self, loan: dict, quote: dict, key: str) -> str:
        self.rendered.append(key)
        return key

    async def render_application(self, loan: dict, data: dict, key: str) -> str:
        self.rendered.append(key)
        return key


@pytest.fixture(autouse=True)
def email_outbox():
    """Capture outbound email for the duration of a test."""
    dispatcher = RecordingEmailDispatcher()
    notifications.set_email_dispatcher(dispatcher)
    yield dispatcher
    notifications.set_email_dispatcher(notifications.LoggingEmailDispatcher())


@pytest.fixture(autouse=True)
def rendered_artifacts():
    """Capture artifact rendering instead of writing to object storage."""
    renderer = RecordingRenderer()
    rendering.set_renderer(renderer)
    yield renderer
    rendering.set_renderer(rendering.StorageArtifactRenderer())


@pytest.fixture
def mock_storage(monkeypatch):
    """In-process stand-in for the S3 StorageService singleton."""
    svc = MagicMock()
    svc.put_object = AsyncMock(side_effect=lambda data, key, content_type: key)
    svc.delete_object = AsyncMock()
    monkeypatch.setattr(storage, "_service", svc)
    return svc


@pytest_asyncio.fixture
async def db_session():
    """Per-test in-memory database with the full schema."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False,
    )
    async with factory() as session:
        yield session

    await drain_background_tasks()
    await engine.dispose()


class ApiHarness:
    """httpx client against the full app, authenticated as ``user``."""

    def __init__(self):
        self.user = None
        self.client: httpx.AsyncClient | None = None

    def as_user(self, user) -> httpx.AsyncClient:
        self.user = user
        return self.client


@pytest_asyncio.fixture
async def api(db_session):
    """Route-level tests on the shared in-memory database.

    Auth and the session dependency are overridden; switch the caller with
    ``api.as_user(...)``.
    """
    harness = ApiHarness()

    async def _db():
        yield db_session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_current_user] = lambda: harness.user
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        harness.client = client
        yield harness
    app.dependency_overrides.clear()
