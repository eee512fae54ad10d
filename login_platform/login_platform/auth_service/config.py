"""
Configuration management for the auth service
"""
import re
from datetime import timedelta
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_DEFAULT_SECRET = "insecure_dev_secret"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*(s|m|h|d|w|y)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "y": timedelta(days=365),
}


def parse_duration(value: str) -> timedelta:
    """
    Parse an expiry such as "15m", "7d", "12h" or "3600" into a timedelta.

    A bare number is a count of seconds.

    Raises:
        ValueError: If the value is not a positive duration
    """
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration '{value}'. Use e.g. 30s, 15m, 12h, 7d, 2w or a number of seconds")

    amount = int(match.group(1))
    if amount <= 0:
        raise ValueError(f"Duration must be positive, got '{value}'")

    unit = (match.group(2) or "s").lower()
    return amount * _DURATION_UNITS[unit]


class Settings(BaseSettings):
    """Auth service configuration loaded from environment variables"""

    # Token Configuration
    JWT_SECRET: str = INSECURE_DEFAULT_SECRET
    JWT_EXPIRES_IN: str = "15m"
    JWT_REFRESH_SECRET: Optional[str] = None
    JWT_REFRESH_EXPIRES_IN: str = "7d"
    JWT_ALGORITHM: str = "HS256"

    # Password Hashing
    BCRYPT_ROUNDS: int = 10

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = None

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./app.db"

    # Server Configuration
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("JWT_EXPIRES_IN", "JWT_REFRESH_EXPIRES_IN")
    @classmethod
    def validate_expiry(cls, v: str) -> str:
        parse_duration(v)
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_rounds(cls, v: int) -> int:
        # bcrypt accepts cost factors 4..31
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @property
    def refresh_secret(self) -> str:
        return self.JWT_REFRESH_SECRET or self.JWT_SECRET

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.JWT_EXPIRES_IN)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.JWT_REFRESH_EXPIRES_IN)

    @property
    def uses_insecure_secret(self) -> bool:
        return self.JWT_SECRET == INSECURE_DEFAULT_SECRET


# Global settings instance
settings = Settings()
