"""
Unit tests for configuration management.
"""

import os
from unittest.mock import patch

import pytest

from articlepay.config import get_config, validate_config


class TestGetConfig:
    """Test configuration loading from environment variables."""

    def test_get_config_defaults(self):
        """Test that get_config returns default values when env vars not set."""
        config = get_config()

        assert config["FLASK_ENV"] == "testing"  # Set in conftest
        assert config["RPC_HOST"] == "localhost"
        assert config["RPC_PORT"] == 8332
        assert config["PAYMENT_CONFIRMER"] == "trust"
        assert config["AUTH_CHALLENGE_TTL"] == 600
        assert config["API_PREFIX"] == ""
        assert config["APP_NAME"] == "articlepay"

    def test_get_config_custom_values(self):
        """Test that get_config uses environment variables when provided."""
        with patch.dict(os.environ, {"RPC_HOST": "192.168.1.100", "RPC_PORT": "18332", "APP_NAME": "CustomApp"}):
            config = get_config()

            assert config["RPC_HOST"] == "192.168.1.100"
            assert config["RPC_PORT"] == 18332
            assert config["APP_NAME"] == "CustomApp"

    def test_api_prefix_trailing_slash_is_dropped(self):
        with patch.dict(os.environ, {"API_PREFIX": "/api/protected/"}):
            assert get_config()["API_PREFIX"] == "/api/protected"

    def test_confirmer_is_normalised(self):
        with patch.dict(os.environ, {"PAYMENT_CONFIRMER": " RPC "}):
            assert get_config()["PAYMENT_CONFIRMER"] == "rpc"

    def test_get_config_boolean_parsing(self):
        """Test that boolean environment variables are parsed correctly."""
        with patch.dict(os.environ, {"FLASK_DEBUG": "1", "RATE_LIMIT_ENABLED": "yes", "FORCE_HTTPS": "off"}):
            config = get_config()

            assert config["FLASK_DEBUG"] is True
            assert config["RATE_LIMIT_ENABLED"] is True
            assert config["FORCE_HTTPS"] is False

    def test_get_config_integer_parsing(self):
        """Test that integer environment variables are parsed correctly."""
        with patch.dict(os.environ, {"MIN_CONFIRMATIONS": "2", "AUTH_CHALLENGE_TTL": "60", "APP_PORT": "8080"}):
            config = get_config()

            assert config["MIN_CONFIRMATIONS"] == 2
            assert config["AUTH_CHALLENGE_TTL"] == 60
            assert config["APP_PORT"] == 8080

    def test_get_config_invalid_integer_raises(self):
        """Invalid integer inputs should surface a helpful error."""
        with patch.dict(os.environ, {"MIN_CONFIRMATIONS": "not-a-number"}):
            with pytest.raises(ValueError, match="MIN_CONFIRMATIONS"):
                get_config()


class TestValidateConfig:
    """Test configuration validation for production."""

    def test_validate_config_development_passes(self):
        """Development may use the trusting confirmer without secrets."""
        config = {"FLASK_ENV": "development", "PAYMENT_CONFIRMER": "trust", "RPC_PASSWORD": "change-me"}

        assert validate_config(config) is True

    def test_unknown_confirmer_rejected(self):
        with pytest.raises(ValueError, match="PAYMENT_CONFIRMER"):
            validate_config({"FLASK_ENV": "development", "PAYMENT_CONFIRMER": "magic"})

    def test_production_requires_secret_key(self):
        config = {"FLASK_ENV": "production", "PAYMENT_CONFIRMER": "rpc", "RPC_PASSWORD": "s3cret"}

        with pytest.raises(ValueError, match="FLASK_SECRET_KEY"):
            validate_config(config)

    def test_production_rejects_trusting_confirmer(self):
        config = {"FLASK_ENV": "production", "FLASK_SECRET_KEY": "k", "PAYMENT_CONFIRMER": "trust"}

        with pytest.raises(ValueError, match="trust"):
            validate_config(config)

    def test_production_rejects_default_rpc_password(self):
        config = {
            "FLASK_ENV": "production",
            "FLASK_SECRET_KEY": "k",
            "PAYMENT_CONFIRMER": "rpc",
            "RPC_PASSWORD": "change-me",
        }

        with pytest.raises(ValueError, match="RPC_PASSWORD"):
            validate_config(config)

    def test_production_warns_without_database_credentials(self):
        config = {
            "FLASK_ENV": "production",
            "FLASK_SECRET_KEY": "k",
            "PAYMENT_CONFIRMER": "rpc",
            "RPC_PASSWORD": "s3cret",
        }

        with pytest.warns(UserWarning, match="DATABASE_URL"):
            assert validate_config(config) is True
