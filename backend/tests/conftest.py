"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from planner.db.database import close_database, init_database
from planner.main import app


@pytest.fixture(autouse=True)
async def setup_test_db(tmp_path: Path):
    """Set up a fresh test database for each test."""
    db_path = tmp_path / "planner.db"

    # Initialize the database
    await init_database(str(db_path))

    yield

    # Clean up
    await close_database()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
