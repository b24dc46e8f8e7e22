"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. Pydantic Settings reads, in order of priority:
  1. Environment variables
  2. The .env file
  3. Defaults defined here

The JWT secrets ship with development defaults so the service boots without
any setup. They MUST be overridden in any deployed environment.

Usage:
    from crm.config import settings
    print(settings.JWT_SECRET)
"""

import re
from datetime import timedelta

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


def parse_duration(value: str) -> timedelta:
    """
    Convert a duration string such as "15m", "1h" or "7d" to a timedelta.

    A bare number is interpreted as seconds.

    Raises:
        ValueError: If the string is not a recognised duration.
    """
    match = _DURATION_PATTERN.match(str(value))
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class Settings(BaseSettings):
    """Central configuration for the CRM API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "CRM API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local development; point at PostgreSQL (asyncpg) in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/crm.db"

    # --- Tokens ---
    # Access and refresh tokens are signed with different secrets so one
    # can never be presented in place of the other.
    JWT_SECRET: str = "default-secret-change-in-production"
    JWT_REFRESH_SECRET: str = "default-refresh-secret-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_IN: str = "1h"
    JWT_REFRESH_EXPIRES_IN: str = "7d"

    # --- Credential hashing (Argon2id) ---
    # One cost policy for both passwords and refresh tokens.
    HASH_TIME_COST: int = 3
    HASH_MEMORY_COST: int = 65536  # KiB
    HASH_PARALLELISM: int = 4

    # --- Lockout ---
    MAX_FAILED_ATTEMPTS: int = 5
    LOCK_DURATION_MINUTES: int = 15

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @field_validator("JWT_EXPIRES_IN", "JWT_REFRESH_EXPIRES_IN")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.JWT_EXPIRES_IN)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.JWT_REFRESH_EXPIRES_IN)

    @property
    def lock_duration(self) -> timedelta:
        return timedelta(minutes=self.LOCK_DURATION_MINUTES)


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
