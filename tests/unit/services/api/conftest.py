"""Shared fixtures and helpers for services.api test package."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from relaytrace.core.store import Store
from relaytrace.services.api.service import Api, ApiConfig


@pytest.fixture
def api_config() -> ApiConfig:
    """Minimal API config for testing."""
    return ApiConfig(interval=60.0, host="127.0.0.1", port=9999)


@pytest.fixture
def api_service(mock_store: Store, api_config: ApiConfig) -> Api:
    return Api(store=mock_store, config=api_config)


@pytest.fixture
def test_client(api_service: Api) -> TestClient:
    return TestClient(api_service._build_app())
