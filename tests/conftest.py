"""Shared pytest fixtures and configuration.

IMPORTANT: Tests must never reach the real OpenAI or Google APIs.
OpenAI traffic goes through httpx and is intercepted with pytest-httpx.
The block_real_google_calls fixture (autouse=True) raises if a test builds
a real google-genai client without mocking it first.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from imagestudio.adapters.base import GeneratedImage
from imagestudio.api.images import clear_generation_service_cache
from imagestudio.main import app
from imagestudio.storage.history import HistoryStore

# 1x1 transparent PNG
PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJ"
    "RU5ErkJggg=="
)


class RealAPICallError(Exception):
    """Raised when a test tries to make a real API call without proper mocking."""

    pass


def _raise_real_api_error(*args, **kwargs):
    """Raise error when real API is called without mocking."""
    raise RealAPICallError(
        "Test attempted to make a real Google API call! "
        "Patch imagestudio.adapters.google.genai or the adapter in your test."
    )


@pytest.fixture(autouse=True)
def block_real_google_calls():
    """Block real google-genai calls for every test."""
    with patch("google.genai.Client") as mock_genai:
        mock_genai.return_value.aio.models.generate_content = AsyncMock(
            side_effect=_raise_real_api_error
        )
        mock_genai.return_value.aio.models.generate_images = AsyncMock(
            side_effect=_raise_real_api_error
        )
        yield


@pytest.fixture(autouse=True)
def reset_app_state():
    """Clear dependency overrides and the cached service around each test."""
    app.dependency_overrides.clear()
    clear_generation_service_cache()
    yield
    app.dependency_overrides.clear()
    clear_generation_service_cache()


@pytest.fixture(autouse=True)
def clear_db_cache():
    """Clear database cache before each test to avoid event loop issues."""
    from imagestudio import db

    db._get_engine.cache_clear()
    db._get_session_factory.cache_clear()
    yield
    db._get_engine.cache_clear()
    db._get_session_factory.cache_clear()


@pytest.fixture
def test_client():
    """Create FastAPI test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
async def history_store(tmp_path):
    """History store backed by a throwaway SQLite file."""
    store = HistoryStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'history.db'}")
    yield store
    await store.close()


@pytest.fixture
def png_b64():
    """Base64 of a tiny valid PNG."""
    return PNG_B64


@pytest.fixture
def sample_image():
    """A single base64 image result."""
    return GeneratedImage(b64_json=PNG_B64)
