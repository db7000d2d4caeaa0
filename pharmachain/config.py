"""
Flask Dashboard Configuration
"""

import os


def _env_flag(name, default="false"):
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


def _env_int(name):
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else None


class Config:
    """Base configuration."""

    # Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Display-only "secured by blockchain" indicator
    BLOCKCHAIN_ENABLED = _env_flag("BLOCKCHAIN_ENABLED")

    # Store
    SEED_DATA = _env_flag("SEED_DATA", "true")
    RANDOM_SEED = _env_int("RANDOM_SEED")

    # Realtime tamper alert sync (Redis pub/sub)
    ALERT_SYNC_ENABLED = _env_flag("ALERT_SYNC_ENABLED")
    REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")
    ALERT_SYNC_CHANNEL = os.environ.get("ALERT_SYNC_CHANNEL", "tamper_alerts")

    # WebSocket
    WEBSOCKET_PING_INTERVAL = 25
    WEBSOCKET_PING_TIMEOUT = 120


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""

    DEBUG = True
    TESTING = True
    RANDOM_SEED = 1234
    ALERT_SYNC_ENABLED = False
    BLOCKCHAIN_ENABLED = False


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


def get_config(env=None):
    """Get configuration by name, falling back to FLASK_ENV."""
    env = env or os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
