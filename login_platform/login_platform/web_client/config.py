"""
Client-side API configuration, read from the environment.
"""
from typing import Dict, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "http://localhost:3001/api/v1"
GOOGLE_CLIENT_ID_SUFFIX = ".apps.googleusercontent.com"


def derive_ws_url(api_url: str) -> str:
    """WebSocket base URL for an API URL: drop the /api/v1 suffix and switch scheme."""
    return (
        api_url.replace("/api/v1", "")
        .replace("http://", "ws://")
        .replace("https://", "wss://")
    )


def is_valid_google_client_id(client_id: Optional[str]) -> bool:
    # Real client ids are long and end in the Google suffix
    return bool(
        client_id
        and client_id != "your_google_client_id_here"
        and "placeholder" not in client_id
        and client_id.endswith(GOOGLE_CLIENT_ID_SUFFIX)
        and len(client_id) > 50
    )


class ApiConfig(BaseSettings):
    """Where the client talks to and how."""

    API_URL: str = DEFAULT_API_URL
    GOOGLE_CLIENT_ID: Optional[str] = None
    REQUEST_TIMEOUT: float = 30  # seconds

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("API_URL")
    @classmethod
    def normalize_api_url(cls, v: str) -> str:
        return v.rstrip("/") or DEFAULT_API_URL

    @property
    def api_url(self) -> str:
        return self.API_URL

    @property
    def ws_url(self) -> str:
        return derive_ws_url(self.API_URL)

    @property
    def timeout(self) -> float:
        return self.REQUEST_TIMEOUT

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @property
    def google_enabled(self) -> bool:
        return is_valid_google_client_id(self.GOOGLE_CLIENT_ID)
