"""
Auth Router - login, registration, Google sign-in and session endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import (
    ACCESS,
    REFRESH,
    TokenError,
    bearer_token,
    decode_token,
    dummy_verify,
    get_current_user,
    hash_password,
    is_token_revoked,
    issue_session,
    revoke_token,
    verify_password,
)
from ..config import settings
from ..db import get_db
from ..google import GoogleTokenError, verify_google_token
from ..models import User
from ..schemas import (
    ApiResponse,
    GoogleAuthRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
)
from ..utils.event_logger import log_auth_event, log_auth_event_after_response

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_DEACTIVATED = "Account deactivated"
GOOGLE_ONLY_ACCOUNT = 'This account was registered with Google. Use "Continue with Google"'
INTERNAL_ERROR = "Internal server error"
DUPLICATE_EMAIL = "A user with this email already exists"


def _internal_error(action: str, exc: Exception) -> HTTPException:
    logger.exception("Error during %s: %s", action, exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR)


def _login_rejected(detail: str, background_tasks: BackgroundTasks) -> JSONResponse:
    # Background tasks only run on a returned response, not a raised one
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "message": detail},
        background=background_tasks,
    )


@router.post("/login", response_model=ApiResponse)
def login(
    credentials: LoginRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    try:
        user = db.query(User).filter(User.email == credentials.email.lower()).first()
        if not user:
            dummy_verify()
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

        if not user.password:
            dummy_verify()
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=GOOGLE_ONLY_ACCOUNT)

        if not verify_password(credentials.password, user.password):
            log_auth_event_after_response("login_failure", user, request, background_tasks)
            return _login_rejected(INVALID_CREDENTIALS, background_tasks)

        if not user.is_active:
            log_auth_event_after_response("login_failure", user, request, background_tasks, {"reason": "deactivated"})
            return _login_rejected(ACCOUNT_DEACTIVATED, background_tasks)

        log_auth_event("login_success", user, request, db)
        return ApiResponse(
            message="Login successful",
            data={"user": user.to_dict(), **issue_session(user)},
        )

    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("login", e) from e


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    email = payload.email.lower()
    try:
        if db.query(User).filter(User.email == email).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_EMAIL)

        user = User(
            name=payload.name,
            email=email,
            password=hash_password(payload.password),
            phone=payload.phone or None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        log_auth_event("register", user, request, db)
        return ApiResponse(
            message="User registered successfully",
            data={"user": user.to_dict(), **issue_session(user)},
        )

    except HTTPException:
        raise
    except IntegrityError as e:
        # Concurrent registration of the same email
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_EMAIL) from e
    except Exception as e:
        db.rollback()
        raise _internal_error("registration", e) from e


def _find_or_create_google_user(identity, db: Session) -> User:
    user = db.query(User).filter(User.google_id == identity.sub).first()
    if user:
        return user

    # Linking or claiming an address is only safe when Google vouches for it
    if not identity.email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Google email is not verified")

    email = identity.email.lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        user.google_id = identity.sub
        if not user.avatar:
            user.avatar = identity.picture
        logger.info("Linked Google account: user_id=%s", user.id)
    else:
        user = User(
            name=identity.name,
            email=email,
            password=None,
            avatar=identity.picture,
            google_id=identity.sub,
        )
        db.add(user)

    try:
        db.commit()
    except IntegrityError:
        # A concurrent sign-in with the same Google account got there first
        db.rollback()
        user = db.query(User).filter(User.google_id == identity.sub).first()
        if not user:
            raise
        return user

    db.refresh(user)
    return user


@router.post("/google", response_model=ApiResponse)
def google_login(payload: GoogleAuthRequest, request: Request, db: Session = Depends(get_db)):
    if not settings.GOOGLE_CLIENT_ID:
        logger.error("Google sign-in attempted without GOOGLE_CLIENT_ID configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Google OAuth configuration not found")

    try:
        identity = verify_google_token(payload.token, settings.GOOGLE_CLIENT_ID)
    except GoogleTokenError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Error verifying Google token") from e

    if not identity.email or not identity.name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Incomplete Google profile information")

    try:
        user = _find_or_create_google_user(identity, db)
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=ACCOUNT_DEACTIVATED)

        log_auth_event("google_login", user, request, db)
        return ApiResponse(
            message="Google authentication successful",
            data={"user": user.to_dict(), **issue_session(user)},
        )

    except HTTPException:
        raise
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_EMAIL) from e
    except Exception as e:
        db.rollback()
        raise _internal_error("Google authentication", e) from e


@router.post("/refresh", response_model=ApiResponse)
def refresh(payload: RefreshRequest, request: Request, db: Session = Depends(get_db)):
    try:
        claims = decode_token(payload.refreshToken, REFRESH)
    except TokenError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token") from e

    try:
        if is_token_revoked(claims["jti"], db):
            logger.warning("Revoked refresh token presented: jti=%s user_id=%s", claims["jti"], claims["sub"])
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

        user = db.get(User, int(claims["sub"]))
        if not user:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=ACCOUNT_DEACTIVATED)

        # Rotation: the presented refresh token is single-use
        revoke_token(claims, db)
        log_auth_event("token_refresh", user, request, db)
        return ApiResponse(message="Token refreshed", data=issue_session(user))

    except HTTPException:
        raise
    except IntegrityError as e:
        # A concurrent refresh already rotated this token
        db.rollback()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token") from e
    except Exception as e:
        db.rollback()
        raise _internal_error("token refresh", e) from e


@router.post("/logout", response_model=ApiResponse)
def logout(
    request: Request,
    payload: Optional[LogoutRequest] = None,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
):
    presented = [(bearer_token(authorization), ACCESS)]
    if payload and payload.refreshToken:
        presented.append((payload.refreshToken, REFRESH))

    try:
        user_id = None
        for token, token_type in presented:
            if not token:
                continue
            try:
                claims = decode_token(token, token_type)
            except TokenError:
                continue
            if user_id is not None and int(claims["sub"]) != user_id:
                # Never revoke another user's token on this user's logout
                continue
            try:
                revoke_token(claims, db)
            except IntegrityError:
                # Revoked concurrently by another logout
                db.rollback()
            user_id = int(claims["sub"])

        if user_id is not None:
            user = db.get(User, user_id)
            if user:
                log_auth_event("logout", user, request, db)

        return ApiResponse(message="Logout successful")

    except Exception as e:
        db.rollback()
        raise _internal_error("logout", e) from e


@router.get("/me", response_model=ApiResponse)
def me(user: User = Depends(get_current_user)):
    return ApiResponse(message="Current user", data={"user": user.to_dict()})
