# This project was developed with assistance from AI tools.
"""Functional tests: health endpoint and root."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from rpc_db import get_db_service

pytestmark = pytest.mark.functional


def _client(app, healthy: bool) -> TestClient:
    db = MagicMock()
    db.health_check = AsyncMock(return_value=healthy)

    async def fake_db_service():
        return db

    app.dependency_overrides[get_db_service] = fake_db_service
    return TestClient(app)


def test_healthy_database(app):
    resp = _client(app, True).get("/health/")

    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "database": "ok"}


def test_unavailable_database_is_503(app):
    resp = _client(app, False).get("/health/")

    assert resp.status_code == 503
    assert resp.json() == {"status": "degraded", "database": "unavailable"}


def test_root(app):
    resp = TestClient(app).get("/")

    assert resp.json() == {"message": "Welcome to the RPC Lending API"}
