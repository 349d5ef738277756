"""Shared fixtures for coderunner tests."""

from unittest.mock import AsyncMock

import pytest

from coderunner.client import RemoteServiceClient
from coderunner.config import get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    """Each test sees a fresh Settings built from its own environment."""
    for var in ("CODERUNNER_API_URL", "CODERUNNER_POLL_INTERVAL", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_client():
    """Remote client double; every operation is an AsyncMock."""
    return AsyncMock(spec=RemoteServiceClient)
