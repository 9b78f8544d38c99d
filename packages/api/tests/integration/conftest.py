# This project was developed with assistance from AI tools.
"""Integration test fixtures -- real PostgreSQL, no mocks for persistence.

A session-scoped container provides PostgreSQL 16 migrated with alembic.
``db_session`` overrides the in-memory fixture from ``tests/conftest.py``
with a per-test savepoint session, so the same service code (and the
``api`` client fixture) runs against the real dialect: row locks, advisory
locks, and the ``version`` check.
"""

import os

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from testcontainers.postgres import PostgresContainer

from rpc_api.services.background import drain_background_tasks

pytestmark = pytest.mark.integration

_DB_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "..", "db")

TABLES = (
    "closing_checklist_items",
    "audit_events",
    "notifications",
    "payments",
    "documents",
    "needs_list_items",
    "loan_status_history",
    "loan_requests",
    "users",
)


# ---------------------------------------------------------------------------
# Session-scoped: container + migrations + engine
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container():
    """Start postgres:16 via testcontainers."""
    with PostgresContainer(
        image="postgres:16",
        username="test",
        password="test",
        dbname="test",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def db_url(pg_container):
    """Async DB URL for asyncpg."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql+asyncpg://test:test@{host}:{port}/test"


@pytest.fixture(scope="session")
def sync_db_url(pg_container):
    """Sync DB URL for Alembic (psycopg2)."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql://test:test@{host}:{port}/test"


@pytest.fixture(scope="session")
def alembic_cfg(sync_db_url):
    """Alembic config bound to the container."""
    from alembic.config import Config

    cfg = Config(os.path.join(_DB_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(_DB_DIR, "alembic"))
    cfg.set_main_option("sqlalchemy.url", sync_db_url)
    return cfg


@pytest.fixture(scope="session")
def _run_migrations(alembic_cfg, sync_db_url):
    """Run alembic upgrade head against the container."""
    from alembic import command

    os.environ["DATABASE_URL"] = sync_db_url
    command.upgrade(alembic_cfg, "head")


@pytest.fixture(scope="session")
def async_engine(db_url, _run_migrations):
    """Create an async engine pointing at the test container."""
    engine = create_async_engine(db_url, echo=False, poolclass=NullPool)
    yield engine


# ---------------------------------------------------------------------------
# Function-scoped: per-test session with savepoint rollback
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(async_engine):
    """Per-test DB session with savepoint rollback.

    Service-level ``commit()`` calls release a savepoint; the outer
    transaction is rolled back at teardown.
    """
    conn = await async_engine.connect()
    txn = await conn.begin()
    session = AsyncSession(
        bind=conn,
        join_transaction_mode="create_savepoint",
        autoflush=False,
        expire_on_commit=False,
    )
    yield session
    await drain_background_tasks()
    await session.close()
    await txn.rollback()
    await conn.close()


@pytest_asyncio.fixture
async def session_factory(async_engine):
    """Independent sessions on separate connections, for concurrency tests.

    Rows written through these sessions are really committed, so every
    table is truncated at teardown.
    """
    factory = async_sessionmaker(
        bind=async_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False,
    )
    yield factory
    await drain_background_tasks()
    async with async_engine.begin() as conn:
        await conn.execute(text(f"TRUNCATE {', '.join(TABLES)} RESTART IDENTITY CASCADE"))
