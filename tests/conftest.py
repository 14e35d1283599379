"""Pytest configuration and shared fixtures."""

import os

import pytest

from credstore import facade
from credstore.config import get_settings


@pytest.fixture(autouse=True)
def isolated_credstore(monkeypatch):
    """Reset the backend binding and settings so no test sees another's state."""
    for var in [key for key in os.environ if key.startswith("CREDSTORE_")]:
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    facade.reset_backend()
    yield
    facade.reset_backend()
    get_settings.cache_clear()


@pytest.fixture
def mock_backend():
    """Install and return a fresh in-memory backend."""
    return facade.install_mock_backend()
