"""Configuration management for articlepay.

Centralises environment variable loading and validation logic while keeping the
public API intentionally simple.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional, TypedDict

_TRUTHY_VALUES = {"1", "true", "yes", "on"}

CONFIRMER_CHOICES = ("trust", "rpc")


class AppConfig(TypedDict):
    """Typed representation of the application's configuration."""

    FLASK_SECRET_KEY: Optional[str]
    FLASK_ENV: str
    FLASK_DEBUG: bool
    API_PREFIX: str
    PAYMENT_CONFIRMER: str
    MIN_CONFIRMATIONS: int
    RPC_HOST: str
    RPC_PORT: int
    RPC_USER: str
    RPC_PASSWORD: str
    RPC_WALLET: str
    AUTH_CHALLENGE_TTL: int
    RATE_LIMIT_ENABLED: bool
    RATE_LIMIT_DEFAULT: str
    VERIFY_RATE_LIMIT: str
    CHALLENGE_RATE_LIMIT: str
    FORCE_HTTPS: bool
    LOG_LEVEL: str
    DATABASE_URL: Optional[str]
    DB_HOST: str
    DB_PORT: int
    DB_USER: str
    DB_PASSWORD: Optional[str]
    DB_NAME: str
    REDIS_HOST: str
    REDIS_PORT: int
    REDIS_PASSWORD: Optional[str]
    REDIS_DB: int
    REDIS_URL: Optional[str]
    APP_NAME: str
    APP_VERSION: str
    APP_HOST: str
    APP_PORT: int


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable as a boolean."""

    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in _TRUTHY_VALUES


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable as an integer, raising on invalid input."""

    raw_value = os.getenv(name)
    if raw_value is None or raw_value == "":
        return default

    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer (got {raw_value!r})") from exc


def get_config() -> AppConfig:
    """Load application configuration from environment variables."""

    return {
        # Flask Configuration
        "FLASK_SECRET_KEY": os.getenv("FLASK_SECRET_KEY"),
        "FLASK_ENV": os.getenv("FLASK_ENV", "development"),
        "FLASK_DEBUG": _get_env_bool("FLASK_DEBUG", False),
        "API_PREFIX": os.getenv("API_PREFIX", "").rstrip("/"),
        # Payment confirmation
        "PAYMENT_CONFIRMER": os.getenv("PAYMENT_CONFIRMER", "trust").strip().lower(),
        "MIN_CONFIRMATIONS": _get_env_int("MIN_CONFIRMATIONS", 0),
        # Node RPC (used by the rpc confirmer)
        "RPC_HOST": os.getenv("RPC_HOST", "127.0.0.1"),
        "RPC_PORT": _get_env_int("RPC_PORT", 8332),
        "RPC_USER": os.getenv("RPC_USER", "bitcoinrpc"),
        "RPC_PASSWORD": os.getenv("RPC_PASSWORD", "change-me"),
        "RPC_WALLET": os.getenv("RPC_WALLET", ""),
        # Signature handshake
        "AUTH_CHALLENGE_TTL": _get_env_int("AUTH_CHALLENGE_TTL", 600),
        # Rate Limiting
        "RATE_LIMIT_ENABLED": _get_env_bool("RATE_LIMIT_ENABLED", True),
        "RATE_LIMIT_DEFAULT": os.getenv("RATE_LIMIT_DEFAULT", "200/hour"),
        "VERIFY_RATE_LIMIT": os.getenv("VERIFY_RATE_LIMIT", "10 per minute"),
        "CHALLENGE_RATE_LIMIT": os.getenv("CHALLENGE_RATE_LIMIT", "30 per minute"),
        "FORCE_HTTPS": _get_env_bool(
            "FORCE_HTTPS",
            os.getenv("FLASK_ENV", "development").lower() == "production",
        ),
        # Logging
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        # Database Configuration (REQUIRED for production)
        "DATABASE_URL": os.getenv("DATABASE_URL"),
        "DB_HOST": os.getenv("DB_HOST", "localhost"),
        "DB_PORT": _get_env_int("DB_PORT", 5432),
        "DB_USER": os.getenv("DB_USER", "articlepay"),
        "DB_PASSWORD": os.getenv("DB_PASSWORD"),
        "DB_NAME": os.getenv("DB_NAME", "articlepay"),
        # Redis Configuration (optional; rate limits and handshake nonces)
        "REDIS_HOST": os.getenv("REDIS_HOST", ""),
        "REDIS_PORT": _get_env_int("REDIS_PORT", 6379),
        "REDIS_PASSWORD": os.getenv("REDIS_PASSWORD"),
        "REDIS_DB": _get_env_int("REDIS_DB", 0),
        "REDIS_URL": os.getenv("REDIS_URL") or os.getenv("REDIS_DSN"),
        # Application Settings
        "APP_NAME": os.getenv("APP_NAME", "articlepay"),
        "APP_VERSION": os.getenv("APP_VERSION", "1.0.0"),
        "APP_HOST": os.getenv("APP_HOST", "0.0.0.0"),
        "APP_PORT": _get_env_int("APP_PORT", 3001),
    }


def validate_config(config: Mapping[str, Any]) -> bool:
    """Validate critical configuration values.

    Args:
        config: Configuration mapping to validate.

    Returns:
        True if configuration is valid, raises ValueError otherwise.
    """

    confirmer = config.get("PAYMENT_CONFIRMER", "trust")
    if confirmer not in CONFIRMER_CHOICES:
        raise ValueError(f"PAYMENT_CONFIRMER must be one of {', '.join(CONFIRMER_CHOICES)} (got {confirmer!r})")

    if config.get("FLASK_ENV") == "production":
        if not config.get("FLASK_SECRET_KEY"):
            raise ValueError("⚠️  FLASK_SECRET_KEY must be set for production!")

        if confirmer == "trust":
            raise ValueError("⚠️  PAYMENT_CONFIRMER=trust records unconfirmed payments; use rpc in production!")

        if confirmer == "rpc" and config.get("RPC_PASSWORD") == "change-me":
            raise ValueError("⚠️  RPC_PASSWORD must be set for production!")

        if not config.get("DATABASE_URL") and not config.get("DB_PASSWORD"):
            import warnings

            warnings.warn(
                "⚠️  DATABASE_URL or DB_PASSWORD not set - database connectivity may fail!",
                stacklevel=2,
            )

    return True
