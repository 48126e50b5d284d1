"""
Unit tests for ServerConfig.
"""

import pytest

from microapi import ServerConfig
from microapi.http import UnknownMethodPolicy


class TestServerConfig:

    def test_defaults(self):
        """Test default configuration."""
        config = ServerConfig()
        config.validate()

        assert config.host == "localhost"
        assert config.port == 8000
        assert config.unknown_method_policy is UnknownMethodPolicy.FALLBACK_TO_GET

    def test_policy_string_coerced(self):
        """Test that the method policy accepts a string."""
        assert ServerConfig(unknown_method_policy="reject").unknown_method_policy is UnknownMethodPolicy.REJECT

    def test_port_zero_allowed(self):
        """Port 0 means any free port."""
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("changes", [
        {"port": -1},
        {"port": 65536},
        {"backlog": 0},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"buffer_size": 512},
        {"timeout": 0},
        {"keep_alive_timeout": 0},
        {"max_request_size": 1024},
        {"log_level": "LOUD"},
    ])
    def test_validate_rejects(self, changes):
        """Test validation of out-of-range values."""
        with pytest.raises(ValueError):
            ServerConfig(**changes).validate()


class TestFromEnv:

    def test_empty_environment_uses_defaults(self):
        """Test loading from an empty environment."""
        assert ServerConfig.from_env({}) == ServerConfig()

    def test_prefixed_variables(self):
        """Test loading MICROAPI_* variables."""
        config = ServerConfig.from_env({
            "MICROAPI_HOST": "0.0.0.0",
            "MICROAPI_PORT": "9000",
            "MICROAPI_WORKERS": "2",
            "MICROAPI_TIMEOUT": "2.5",
            "MICROAPI_LOG_LEVEL": "debug",
            "MICROAPI_UNKNOWN_METHOD": "REJECT",
        })

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"
        assert config.unknown_method_policy is UnknownMethodPolicy.REJECT
        config.validate()

    def test_plain_host_and_port(self):
        """Test the plain HOST and PORT variables."""
        config = ServerConfig.from_env({"HOST": "127.0.0.1", "PORT": "3000"})
        assert (config.host, config.port) == ("127.0.0.1", 3000)

    def test_prefixed_wins(self):
        """Test that prefixed variables win over plain ones."""
        config = ServerConfig.from_env({"PORT": "3000", "MICROAPI_PORT": "4000"})
        assert config.port == 4000

    def test_bad_number(self):
        """Test a non-numeric port."""
        with pytest.raises(ValueError):
            ServerConfig.from_env({"MICROAPI_PORT": "eighty"})
