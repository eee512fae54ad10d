"""
HTTP client for the auth API, doing what the login and registration pages do.
"""
from typing import Any, Dict, List, Optional
import logging

import requests

from .config import ApiConfig

logger = logging.getLogger(__name__)


class AuthClientError(Exception):
    """Error response from the auth API, carrying the server's message."""

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


class AuthClient:
    def __init__(self, config: Optional[ApiConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or ApiConfig()
        self.session = session or requests.Session()
        self.session.headers.update(self.config.headers)
        self.token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.user: Optional[dict] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def _request(self, method: str, path: str, fallback: str, json: Any = None, auth: bool = False) -> Dict[str, Any]:
        headers = {}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.request(
                method,
                f"{self.config.api_url}{path}",
                json=json,
                headers=headers,
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Request to %s failed: %s", path, exc)
            raise AuthClientError(fallback) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.ok or not body.get("success", False):
            raise AuthClientError(
                body.get("message") or fallback,
                status_code=response.status_code,
                errors=body.get("errors"),
            )
        return body

    def _store_session(self, data: Dict[str, Any]) -> dict:
        self.token = data.get("token")
        self.refresh_token = data.get("refreshToken")
        if "user" in data:
            self.user = data["user"]
        return data

    def login(self, email: str, password: str) -> dict:
        body = self._request("POST", "/auth/login", "Error signing in", json={"email": email, "password": password})
        return self._store_session(body["data"])

    def register(self, name: str, email: str, password: str, phone: Optional[str] = None) -> dict:
        payload = {"name": name, "email": email, "password": password}
        if phone:
            payload["phone"] = phone
        body = self._request("POST", "/auth/register", "Error creating account", json=payload)
        return self._store_session(body["data"])

    def login_with_google(self, credential: str) -> dict:
        if not credential:
            raise AuthClientError("No Google credential received")
        body = self._request("POST", "/auth/google", "Error authenticating with Google", json={"token": credential})
        return self._store_session(body["data"])

    def refresh(self) -> dict:
        if not self.refresh_token:
            raise AuthClientError("No refresh token available")
        body = self._request("POST", "/auth/refresh", "Session expired", json={"refreshToken": self.refresh_token})
        return self._store_session(body["data"])

    def me(self) -> dict:
        body = self._request("GET", "/auth/me", "Error loading profile", auth=True)
        self.user = body["data"]["user"]
        return self.user

    def logout(self) -> None:
        payload = {"refreshToken": self.refresh_token} if self.refresh_token else {}
        try:
            self._request("POST", "/auth/logout", "Error signing out", json=payload, auth=True)
        finally:
            # Local session is dropped even if the server could not be reached
            self.token = None
            self.refresh_token = None
            self.user = None
