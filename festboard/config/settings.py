"""
Runtime Settings

Centralized configuration for the results board.
All values are loaded from environment variables (a local .env is honoured).
"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return int(value)


def get_float_env(key: str, default: float) -> float:
    """Get a float value from environment variable."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return float(value)


def get_list_env(key: str) -> List[str]:
    """Get a comma separated list from environment variable."""
    return [item.strip() for item in os.getenv(key, "").split(",") if item.strip()]


class Settings:
    """
    Settings for the application.

    To add a new setting:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Add it to .env.example
    """

    # Storage
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./festboard.db")
    DB_TIMEOUT_SECONDS: float = get_float_env("DB_TIMEOUT_SECONDS", 30.0)
    DB_ECHO: bool = get_bool_env("DB_ECHO", False)

    # Server
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    ALLOWED_ORIGINS: List[str] = get_list_env("ALLOWED_ORIGINS")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = get_int_env("PORT", 8000)

    # Live stream
    STREAM_KEEPALIVE_SECONDS: float = get_float_env("STREAM_KEEPALIVE_SECONDS", 25.0)
    SUBSCRIBER_QUEUE_SIZE: int = get_int_env("SUBSCRIBER_QUEUE_SIZE", 100)

    # Read endpoints
    LEADERBOARD_LIMIT: int = get_int_env("LEADERBOARD_LIMIT", 20)
    RESULTS_LIMIT: int = get_int_env("RESULTS_LIMIT", 15)

    # Display client
    DISPLAY_BASE_URL: str = os.getenv("DISPLAY_BASE_URL", "http://localhost:8000")
    DISPLAY_RECONCILE_SECONDS: float = get_float_env("DISPLAY_RECONCILE_SECONDS", 5.0)
    DISPLAY_REVEAL_SECONDS: float = get_float_env("DISPLAY_REVEAL_SECONDS", 5.5)
    DISPLAY_SCROLL_SECONDS: float = get_float_env("DISPLAY_SCROLL_SECONDS", 4.0)
    DISPLAY_RECENT_LIMIT: int = get_int_env("DISPLAY_RECENT_LIMIT", 10)
    DISPLAY_RECONNECT_SECONDS: float = get_float_env("DISPLAY_RECONNECT_SECONDS", 3.0)

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


# Singleton instance for easy importing
settings = Settings()
