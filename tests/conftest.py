"""Shared test fixtures."""

import os

# Settings are read at import time; these must be in place before src.main loads
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "0")
os.environ.setdefault(
    "ADMIN_ADDRESSES", '["0xad00000000000000000000000000000000000001"]'
)

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
