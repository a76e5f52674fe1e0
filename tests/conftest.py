"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Test environment variables (applied before the app is imported)
- A controllable clock and a fresh quota gate per test
- Test client fixtures for FastAPI
- Shared yt-dlp mock payloads
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Settings are read once at import time, so the environment is set before any app import
TEST_ENV = {
    "ADMIN_API_KEY": "test-admin-key",
    "ALLOWED_ORIGIN": "*",
    "TEMP_DIR": "./test_temp",
    "FREE_MONTHLY_LIMIT": "30000",
    "PREMIUM_MONTHLY_LIMIT": "300000",
    "TEMP_CLEANUP_ENABLED": "false",
    "SEED_API_KEYS": "",
}
os.environ.update(TEST_ENV)

from app.dependencies import get_quota_gate  # noqa: E402
from app.models import Tier  # noqa: E402
from app.services.quota_service import QuotaGate  # noqa: E402
from app.services.usage_store import InMemoryUsageStore  # noqa: E402


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime):
        self.now = now


@pytest.fixture
def clock():
    """Clock starting mid-month: 2026-03-15 12:00 UTC."""
    return FakeClock(datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def limits():
    return {Tier.FREE: 5, Tier.PREMIUM: 50}


@pytest.fixture
def store():
    return InMemoryUsageStore()


@pytest.fixture
def gate(store, limits, clock):
    return QuotaGate(store=store, limits=limits, clock=clock)


@pytest.fixture
def api_key(gate):
    """Issue and return a free-tier test key."""
    return gate.issue_key(tier=Tier.FREE, key="test-api-key").key


@pytest.fixture
def api_headers(api_key):
    """Return headers with API key."""
    return {"X-API-Key": api_key}


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": "test-admin-key"}


@pytest_asyncio.fixture
async def client(gate):
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server. The process-wide quota gate is replaced
    by the per-test `gate` fixture.
    """
    from main import app

    app.dependency_overrides[get_quota_gate] = lambda: gate
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def video_id():
    return "dQw4w9WgXcQ"


@pytest.fixture
def mock_ytdlp_info(video_id):
    """Mock yt-dlp video info response."""
    return {
        "id": video_id,
        "title": "Test Video Title",
        "duration": 212,
        "channel": "Test Channel",
        "uploader": "Test Channel",
        "view_count": 1000,
        "upload_date": "20240101",
        "description": "Test video description",
        "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
        "formats": [
            {"format_id": "139", "ext": "m4a", "acodec": "mp4a.40.5", "vcodec": "none",
             "abr": 48.0, "format_note": "low", "url": "https://media.example/139"},
            {"format_id": "140", "ext": "m4a", "acodec": "mp4a.40.2", "vcodec": "none",
             "abr": 129.5, "format_note": "medium", "url": "https://media.example/140"},
            {"format_id": "18", "ext": "mp4", "acodec": "mp4a.40.2", "vcodec": "avc1.42001E",
             "height": 360, "format_note": "360p", "url": "https://media.example/18"},
            {"format_id": "137", "ext": "mp4", "acodec": "none", "vcodec": "avc1.640028",
             "height": 1080, "format_note": "1080p", "url": "https://media.example/137"},
        ],
    }


@pytest.fixture
def mock_ytdlp_search_info():
    """Mock flat 'ytsearchN:' response, including a channel entry that must be skipped."""
    return {
        "_type": "playlist",
        "entries": [
            {"_type": "url", "ie_key": "Youtube", "id": "dQw4w9WgXcQ", "title": "Video 1",
             "duration": 212, "view_count": 10, "channel": "Channel 1",
             "thumbnails": [{"url": "https://i.ytimg.com/small.jpg"}, {"url": "https://i.ytimg.com/big.jpg"}]},
            {"_type": "url", "ie_key": "YoutubeTab", "id": "UCxyz", "title": "A Channel"},
            {"_type": "url", "ie_key": "Youtube", "id": "9bZkp7q19f0", "title": "Video 2",
             "duration": 3725.0, "view_count": 20, "uploader": "Uploader 2"},
        ],
    }


# Mark all tests as asyncio
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )
