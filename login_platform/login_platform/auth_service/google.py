"""
Google ID token verification.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

logger = logging.getLogger(__name__)


class GoogleTokenError(Exception):
    """Raised when a Google ID token cannot be verified."""


@dataclass
class GoogleIdentity:
    sub: str
    email: Optional[str]
    email_verified: bool
    name: Optional[str]
    picture: Optional[str]


def verify_google_token(token: str, client_id: str) -> GoogleIdentity:
    """
    Verify a Google ID token against Google's public keys.

    Checks signature, issuer, expiry and that the audience is ``client_id``.

    Raises:
        GoogleTokenError: If the token is not a valid ID token for this client
    """
    try:
        payload = id_token.verify_oauth2_token(token, google_requests.Request(), client_id)
    except (ValueError, google_exceptions.GoogleAuthError) as exc:
        logger.warning("Google ID token rejected: %s", exc)
        raise GoogleTokenError(str(exc)) from exc

    if not payload or not payload.get("sub"):
        raise GoogleTokenError("Google token carries no subject")

    return GoogleIdentity(
        sub=payload["sub"],
        email=payload.get("email"),
        email_verified=bool(payload.get("email_verified", False)),
        name=payload.get("name"),
        picture=payload.get("picture"),
    )
