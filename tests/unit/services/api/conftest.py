"""Shared fixtures for services.api test package."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from meshcanary.core.canary import Canary
from meshcanary.services.api import Api, ApiConfig


@pytest.fixture
def api_config() -> ApiConfig:
    """Minimal API config for testing."""
    return ApiConfig(interval=60.0, host="127.0.0.1", port=9999, request_timeout=5.0)


@pytest.fixture
def api_service(canary: Canary, api_config: ApiConfig) -> Api:
    return Api(canary=canary, config=api_config)


@pytest.fixture
def test_client(api_service: Api) -> TestClient:
    """FastAPI TestClient from the Api service."""
    app = api_service._build_app()
    return TestClient(app)
