"""
Test configuration and fixtures for the Accessibility Audit API.

Nothing here launches a real browser: drivers, pages and outbound HTTP are
replaced with mocks or httpx mock transports.
"""
from typing import Generator

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Clean TestClient per test; entering it runs the lifespan so the audit
    queue exists on app.state.
    """
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()
