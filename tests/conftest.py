"""Pytest configuration and shared fixtures for all tests."""

import pytest
from fastapi.testclient import TestClient

from blocklist_api.blocklist.manager import BlocklistStore
from blocklist_api.config import Settings
from blocklist_api.main import create_app


@pytest.fixture
def store():
    """Empty store with a short lock timeout so contention tests stay fast."""
    return BlocklistStore(lock_timeout=0.5)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        log_level="WARNING",
        lock_timeout=0.5,
        request_timeout=5.0,
        initial_blocklist=[],
    )


@pytest.fixture
def app(settings, store):
    return create_app(settings, store)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
