"""Unit tests for configuration models and environment settings."""

import httpx
import pytest
from pydantic import ValidationError as PydanticValidationError

from http_requester.config.settings import (
    DEFAULT_REQUEST_TIMEOUT,
    AgentOptions,
    RequesterConfig,
    RequesterSettings,
)
from http_requester.exceptions import ConfigurationError


class TestRequesterConfig:
    def test_none_gives_defaults(self):
        config = RequesterConfig.from_mapping(None)
        assert config.timeout_msecs == DEFAULT_REQUEST_TIMEOUT
        assert config.timing is False
        assert config.agent_options == AgentOptions()

    def test_explicit_none_values_fall_back_to_defaults(self):
        config = RequesterConfig.from_mapping(
            {"timeout_msecs": None, "timing": None, "agent_options": None}
        )
        assert config.timeout_msecs == DEFAULT_REQUEST_TIMEOUT
        assert config.timing is False
        assert config.agent_options == AgentOptions()

    def test_largest_safe_timeout_is_accepted(self):
        config = RequesterConfig.from_mapping({"timeout_msecs": 2**53 - 1})
        assert config.timeout_msecs == 2**53 - 1

    def test_timeout_above_safe_range_is_rejected(self):
        with pytest.raises(ConfigurationError) as exc:
            RequesterConfig.from_mapping({"timeout_msecs": 2**53})
        assert str(exc.value) == "config.timeout_msecs must be a positive integer"
        assert exc.value.details == {"setting": "config.timeout_msecs"}

    def test_agent_option_bounds(self):
        with pytest.raises(ConfigurationError) as exc:
            RequesterConfig.from_mapping({"agent_options": {"max_connections": 0}})
        assert exc.value.setting == "config.agent_options.max_connections"

    def test_strict_verify_flag(self):
        with pytest.raises(ConfigurationError):
            RequesterConfig.from_mapping({"agent_options": {"verify": "false"}})

    def test_config_is_frozen(self):
        config = RequesterConfig.from_mapping({})
        with pytest.raises(PydanticValidationError):
            config.timeout_msecs = 5


class TestAgentOptions:
    def test_to_limits(self):
        options = AgentOptions(
            max_connections=8, max_keepalive_connections=2, keepalive_expiry=1.5
        )
        assert options.to_limits() == httpx.Limits(
            max_connections=8, max_keepalive_connections=2, keepalive_expiry=1.5
        )

    def test_unlimited_connections(self):
        limits = AgentOptions(max_connections=None).to_limits()
        assert limits.max_connections is None


class TestRequesterSettings:
    def test_defaults(self):
        settings = RequesterSettings()
        assert settings.timeout_msecs == DEFAULT_REQUEST_TIMEOUT
        assert settings.timing is False
        assert settings.agent_options == {}
        assert settings.dns_cache_ttl == 60.0
        assert settings.log_level == "INFO"

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("REQUESTER_TIMEOUT_MSECS", "1200")
        monkeypatch.setenv("REQUESTER_TIMING", "true")
        monkeypatch.setenv("REQUESTER_AGENT_OPTIONS", '{"http2": true}')
        monkeypatch.setenv("REQUESTER_LOG_LEVEL", "DEBUG")

        settings = RequesterSettings()

        assert settings.timeout_msecs == 1200
        assert settings.timing is True
        assert settings.agent_options == {"http2": True}
        assert settings.log_level == "DEBUG"

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("REQUESTER_DNS_CACHE_TTL=5\n")
        assert RequesterSettings().dns_cache_ttl == 5.0

    def test_dns_cache_ttl_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("REQUESTER_DNS_CACHE_TTL", "0")
        with pytest.raises(PydanticValidationError):
            RequesterSettings()

    def test_to_config_round_trips_through_requester_config(self):
        settings = RequesterSettings(
            timeout_msecs=700, agent_options={"max_connections": 2}
        )
        config = RequesterConfig.from_mapping(settings.to_config())
        assert config.timeout_msecs == 700
        assert config.agent_options.max_connections == 2

    def test_env_timeout_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("REQUESTER_TIMEOUT_MSECS", "0")
        with pytest.raises(PydanticValidationError):
            RequesterSettings()

    def test_load_reports_malformed_variable(self, monkeypatch):
        monkeypatch.setenv("REQUESTER_TIMEOUT_MSECS", "abc")
        with pytest.raises(ConfigurationError) as exc:
            RequesterSettings.load()
        assert exc.value.setting == "REQUESTER_TIMEOUT_MSECS"
        assert str(exc.value).startswith("REQUESTER_TIMEOUT_MSECS ")

    def test_load_reports_malformed_json(self, monkeypatch):
        monkeypatch.setenv("REQUESTER_AGENT_OPTIONS", "{not json")
        with pytest.raises(ConfigurationError):
            RequesterSettings.load()

    def test_load_with_overrides(self):
        assert RequesterSettings.load(timing=True).timing is True
