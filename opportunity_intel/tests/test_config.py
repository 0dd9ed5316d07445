"""Tests for configuration loading and validation."""

import os
from unittest.mock import patch

import pytest

from opportunity_intel.config import Config, load_config, validate_config
from opportunity_intel.errors import ConfigError

CONFIG_VARS = (
    "GRANTS_GOV_API_URL",
    "GRANTS_GOV_ATTRIBUTION",
    "USASPENDING_API_URL",
    "PROVIDER_TIMEOUT_SECONDS",
    "PROVIDER_MAX_ATTEMPTS",
    "MAX_FETCH_WINDOW",
    "DEFAULT_PAGE_SIZE",
    "CACHE_CLEANUP_INTERVAL_MINUTES",
    "HEURISTICS_PATH",
    "LOG_LEVEL",
)


def _clean_env(**overrides):
    env = {k: v for k, v in os.environ.items() if k.upper() not in CONFIG_VARS}
    env.update(overrides)
    return env


class TestConfigValidation:
    """Test startup config validation."""

    VALID_ENV = {
        "GRANTS_GOV_ATTRIBUTION": "Test Service",
        "PROVIDER_TIMEOUT_SECONDS": "3.5",
        "PROVIDER_MAX_ATTEMPTS": "5",
        "MAX_FETCH_WINDOW": "200",
        "LOG_LEVEL": "DEBUG",
    }

    def test_defaults_without_environment(self):
        """No variables set → every field has a working default."""
        with patch.dict(os.environ, _clean_env(), clear=True):
            config = validate_config(_env_file=None)

        assert config.grants_gov_api_url == "https://api.grants.gov/v1/api"
        assert config.usaspending_api_url == "https://api.usaspending.gov/api/v2"
        assert config.provider_timeout_seconds == 8.0
        assert config.provider_max_attempts == 3
        assert config.max_fetch_window == 500
        assert config.default_page_size == 20
        assert config.cache_cleanup_interval_minutes == 10
        assert config.heuristics_path is None
        assert config.log_level == "INFO"

    def test_environment_overrides_defaults(self):
        with patch.dict(os.environ, _clean_env(**self.VALID_ENV), clear=True):
            config = validate_config(_env_file=None)

        assert config.grants_gov_attribution == "Test Service"
        assert config.provider_timeout_seconds == 3.5
        assert config.provider_max_attempts == 5
        assert config.max_fetch_window == 200
        assert config.log_level == "DEBUG"

    def test_lowercase_variable_names_are_accepted(self):
        with patch.dict(os.environ, _clean_env(default_page_size="50"), clear=True):
            assert validate_config(_env_file=None).default_page_size == 50

    def test_invalid_values_listed_together(self):
        """Every bad variable is named, not just the first one."""
        bad = {"PROVIDER_TIMEOUT_SECONDS": "-1", "PROVIDER_MAX_ATTEMPTS": "0"}
        with patch.dict(os.environ, _clean_env(**bad), clear=True):
            with pytest.raises(ConfigError) as exc_info:
                validate_config(_env_file=None)

        message = str(exc_info.value)
        assert "PROVIDER_TIMEOUT_SECONDS" in message
        assert "PROVIDER_MAX_ATTEMPTS" in message

    def test_non_numeric_value_is_config_error(self):
        with patch.dict(os.environ, _clean_env(MAX_FETCH_WINDOW="lots"), clear=True):
            with pytest.raises(ValueError):
                validate_config(_env_file=None)

    def test_keyword_overrides_win(self):
        with patch.dict(os.environ, _clean_env(LOG_LEVEL="DEBUG"), clear=True):
            config = validate_config(_env_file=None, log_level="WARNING")
        assert config.log_level == "WARNING"

    def test_load_config_returns_config(self):
        with patch.dict(os.environ, _clean_env(), clear=True):
            assert isinstance(load_config(), Config)
