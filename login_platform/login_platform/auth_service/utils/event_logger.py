"""
Event logger utility for authentication events.
"""
from datetime import datetime
from typing import Optional
from fastapi import BackgroundTasks, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from ..db import SessionLocal
from ..models import AuthEvent, User

logger = logging.getLogger(__name__)


ALLOWED_EVENT_TYPES = {
    "login_success",
    "login_failure",
    "register",
    "google_login",
    "token_refresh",
    "logout"
}


def client_ip(request: Request) -> Optional[str]:
    """Client address, falling back to the first X-Forwarded-For hop."""
    if request.client:
        return request.client.host

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return None


def _check_event_type(event_type: str) -> None:
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )


def _record_event(
    db: Session,
    event_type: str,
    user_id: int,
    email: str,
    ip_address: Optional[str],
    user_agent: Optional[str],
    metadata: Optional[dict]
) -> None:
    try:
        auth_event = AuthEvent(
            user_id=user_id,
            email=email,
            event_type=event_type,
            ip_address=ip_address,
            user_agent=user_agent,
            timestamp=datetime.utcnow(),
            event_metadata=metadata or {}
        )

        db.add(auth_event)
        db.commit()

        logger.info(
            "AUTH %s user_id=%s email=%s ip=%s",
            event_type, user_id, email, ip_address
        )

    except SQLAlchemyError as e:
        # Audit failures must not break the auth flow
        logger.error(
            "Failed to log auth event: user_id=%s event_type=%s error=%s",
            user_id, event_type, e
        )
        db.rollback()


def log_auth_event(
    event_type: str,
    user: User,
    request: Request,
    db: Session,
    metadata: dict = None
) -> None:
    """
    Log an authentication event to the database.

    Args:
        event_type: One of: login_success, login_failure, register,
                    google_login, token_refresh, logout
        user: User object from database
        request: FastAPI Request object
        db: Database session
        metadata: Optional dictionary of additional context

    Raises:
        ValueError: If event_type is invalid
    """
    _check_event_type(event_type)
    _record_event(
        db, event_type, user.id, user.email,
        client_ip(request), request.headers.get("user-agent"), metadata
    )


def _record_event_in_own_session(*args) -> None:
    db = SessionLocal()
    try:
        _record_event(db, *args)
    finally:
        db.close()


def log_auth_event_after_response(
    event_type: str,
    user: User,
    request: Request,
    background_tasks: BackgroundTasks,
    metadata: dict = None
) -> None:
    """
    Same as log_auth_event, but the write happens in a background task with
    its own session once the response has been sent. Rejections use this so
    their response time does not depend on a database write.
    """
    _check_event_type(event_type)
    background_tasks.add_task(
        _record_event_in_own_session,
        event_type, user.id, user.email,
        client_ip(request), request.headers.get("user-agent"), metadata
    )
