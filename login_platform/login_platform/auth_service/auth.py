from passlib.context import CryptContext
from datetime import datetime, timezone
from typing import Optional
import logging
import uuid
import jwt
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import User, RevokedToken

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


class TokenError(Exception):
    """Raised when a session token cannot be accepted."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def dummy_verify() -> None:
    """Spend the time of a real hash check when there is no hash to check."""
    pwd_context.dummy_verify()


def _encode(claims: dict, secret: str, ttl) -> str:
    now = datetime.utcnow()
    payload = dict(claims, jti=uuid.uuid4().hex, iat=now, exp=now + ttl)
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)

def create_access_token(user: User) -> str:
    claims = {"sub": str(user.id), "userId": user.id, "email": user.email, "type": ACCESS}
    return _encode(claims, settings.JWT_SECRET, settings.access_token_ttl)

def create_refresh_token(user: User) -> str:
    claims = {"sub": str(user.id), "userId": user.id, "type": REFRESH}
    return _encode(claims, settings.refresh_secret, settings.refresh_token_ttl)

def issue_session(user: User) -> dict:
    """Access and refresh token pair, keyed the way clients expect them."""
    return {
        "token": create_access_token(user),
        "refreshToken": create_refresh_token(user),
    }


def decode_token(token: str, token_type: str = ACCESS) -> dict:
    """
    Verify a session token and return its claims.

    Args:
        token: Encoded JWT
        token_type: "access" or "refresh"; selects the signing secret and
                    must match the token's own type claim

    Raises:
        TokenError: If the signature, expiry or type is not acceptable
    """
    secret = settings.JWT_SECRET if token_type == ACCESS else settings.refresh_secret
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub", "jti"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token expired") from exc
    except jwt.PyJWTError as exc:
        raise TokenError("Invalid token") from exc

    if claims.get("type") != token_type:
        raise TokenError(f"Expected {token_type} token")
    return claims


def is_token_revoked(jti: str, db: Session) -> bool:
    return db.get(RevokedToken, jti) is not None

def revoke_token(claims: dict, db: Session) -> None:
    """Add a decoded token to the deny-list. Revoking twice is a no-op."""
    if is_token_revoked(claims["jti"], db):
        return

    db.add(RevokedToken(
        jti=claims["jti"],
        token_type=claims["type"],
        user_id=int(claims["sub"]),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc).replace(tzinfo=None),
        revoked_at=datetime.utcnow(),
    ))
    db.commit()
    logger.info("Token revoked: jti=%s type=%s user_id=%s", claims["jti"], claims["type"], claims["sub"])

def purge_expired_tokens(db: Session) -> int:
    """
    Delete deny-list rows for tokens that have expired anyway.

    Returns:
        Number of rows removed
    """
    removed = db.query(RevokedToken).filter(RevokedToken.expires_at < datetime.utcnow()).delete()
    db.commit()
    if removed:
        logger.info("Purged %s expired revoked tokens", removed)
    return removed


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None

def get_current_claims(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> dict:
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        claims = decode_token(token, ACCESS)
    except TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    if is_token_revoked(claims["jti"], db):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return claims

def get_current_user(
    claims: dict = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, int(claims["sub"]))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account deactivated")
    return user
