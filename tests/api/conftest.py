"""API test fixtures — FastAPI app over the per-test SQLite database.

Invariants:
    - get_db_manager dependency overridden to the test manager
    - The module-level db_manager is swapped for readiness checks and restored after
"""

import pytest
from httpx import ASGITransport, AsyncClient

import petmarket.infrastructure.database as db_module
from petmarket.infrastructure.database import get_db_manager
from petmarket.main import app


@pytest.fixture
async def client(db_manager):
    app.dependency_overrides[get_db_manager] = lambda: db_manager
    original_manager = db_module.db_manager
    db_module.db_manager = db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
