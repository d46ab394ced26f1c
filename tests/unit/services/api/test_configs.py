"""Unit tests for services.api.configs module."""

import pytest
from pydantic import ValidationError

from relaytrace.services.api import ApiConfig


class TestApiConfig:
    def test_defaults(self) -> None:
        config = ApiConfig()
        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.cors_origins == []
        assert config.request_timeout == 30.0
        assert config.interval == 300.0

    def test_custom(self) -> None:
        config = ApiConfig(port=8443, cors_origins=["https://example.org"], request_timeout=5)
        assert config.port == 8443
        assert config.cors_origins == ["https://example.org"]

    @pytest.mark.parametrize("port", [0, 65536])
    def test_invalid_port(self, port: int) -> None:
        with pytest.raises(ValidationError):
            ApiConfig(port=port)

    @pytest.mark.parametrize("timeout", [0.5, 301.0])
    def test_request_timeout_bounds(self, timeout: float) -> None:
        with pytest.raises(ValidationError):
            ApiConfig(request_timeout=timeout)

    def test_empty_host_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ApiConfig(host="")

    def test_metrics_nested(self) -> None:
        config = ApiConfig.model_validate({"metrics": {"enabled": True, "port": 8002}})
        assert config.metrics.port == 8002
