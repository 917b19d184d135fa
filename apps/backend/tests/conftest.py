"""
pytest configuration and shared fixtures for the CivicPulse Analytics API tests.

Key concern: tests must not require a live MongoDB. We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. Setting db_client.client = None (disconnected) so health check
     correctly reports "disconnected" and the stored-complaint route
     answers 503 — both valid test-mode states.
  3. Resetting the rate limiter between tests so the POST routes never
     trip each other's limits.

Routes that need data from MongoDB get a FakeDB through
app.dependency_overrides[get_db] (see test_analytics_routes.py).

Model tests build ComplaintRecord lists with the `make_complaint`
factory below against the fixed reference time NOW.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ANALYTICS_RATE_LIMIT", "1000/minute")

from civicpulse.models.complaint import ComplaintRecord  # noqa: E402

# Mid-month, mid-day reference time shared by the model tests
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_complaint(
    complaint_id=1,
    category="roads",
    days_ago: float = 0,
    status: str = "pending",
    resolved_after: float | None = None,
    votes: int = 0,
    lat: float | None = None,
    lng: float | None = None,
    location: str | None = None,
    now: datetime = NOW,
) -> ComplaintRecord:
    """
    Build a ComplaintRecord submitted `days_ago` days before `now`.

    `resolved_after` is the resolution time in days after submission; it
    is only used for resolved/verified records unless passed explicitly.
    """
    submitted = now - timedelta(days=days_ago)
    resolved = submitted + timedelta(days=resolved_after) if resolved_after is not None else None
    return ComplaintRecord(
        id=complaint_id,
        category=category,
        submitted_date=submitted,
        status=status,
        resolved_date=resolved,
        votes=votes,
        latitude=lat,
        longitude=lng,
        location=location,
    )


@pytest.fixture()
def now():
    return NOW


@pytest.fixture(autouse=True)
async def mock_db():
    """
    Patch the MongoDB lifecycle for every test.

    - connect_to_mongo → no-op AsyncMock (startup doesn't attempt real connection)
    - close_mongo_connection → no-op AsyncMock
    - db_client.client → None  (health check reports "disconnected", which is fine)
    - db_client.db → None      (GET /municipals/... answers 503)
    """
    with (
        patch("civicpulse.main.connect_to_mongo", new_callable=AsyncMock),
        patch("civicpulse.main.close_mongo_connection", new_callable=AsyncMock),
    ):
        import civicpulse.core.database as db_module

        # Save originals so we can restore after the test
        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    from civicpulse.core.rate_limit import limiter

    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001  mock_db must run first
    """
    HTTPX async test client wired to the FastAPI app.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from civicpulse.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
