"""Unit tests for services.api.configs module."""

import pytest
from pydantic import ValidationError

from meshcanary.services.api import ApiConfig


class TestApiConfig:
    def test_defaults(self):
        config = ApiConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.cors_origins == []
        assert config.request_timeout == 30.0
        assert config.refresh_on_read is False
        assert config.machines_ssh_only is True

    def test_custom(self):
        config = ApiConfig(
            host="100.64.0.10",
            port=9000,
            cors_origins=["https://dash.example.com"],
            refresh_on_read=True,
        )
        assert config.host == "100.64.0.10"
        assert config.cors_origins == ["https://dash.example.com"]
        assert config.refresh_on_read is True

    @pytest.mark.parametrize(
        "overrides",
        [
            {"port": 0},
            {"port": 70000},
            {"host": ""},
            {"request_timeout": 0.5},
            {"request_timeout": 301},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(ValidationError):
            ApiConfig(**overrides)
