"""Shared fixtures: run the API against an in-memory job database."""

import os

os.environ.setdefault("GREENHOUSE_DATABASE_URL", "sqlite://")
os.environ.setdefault("GREENHOUSE_LOG_FORMAT", "console")

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="module")
def client():
    """Test client with startup events (database init) applied."""
    from py_greenhouse.api.main import app

    with TestClient(app) as test_client:
        yield test_client
