"""
Auth service - registration, login and session tokens
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import os
import sys

from .config import settings
from .auth import purge_expired_tokens
from .db import SessionLocal, init_db
from .routes import auth, health


def configure_logging() -> None:
    handlers = [logging.StreamHandler(sys.stdout)]

    # File logging is optional; continue without it if the directory is unusable
    if settings.LOG_DIR:
        try:
            os.makedirs(settings.LOG_DIR, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(settings.LOG_DIR, "auth_events.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers
    )


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Initialize database on startup"""
    if settings.uses_insecure_secret:
        logger.warning("JWT_SECRET is not configured; using the insecure development secret")
    init_db()
    db = SessionLocal()
    try:
        purge_expired_tokens(db)
    finally:
        db.close()
    yield


app = FastAPI(
    title="Auth Service",
    description="User registration, login and session tokens",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        # loc is ("body", "email") for body fields
        field = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
        errors.append({"field": field, "message": error["msg"]})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(health.router)


@app.get("/")
def root():
    return {
        "service": "Auth Service",
        "version": "1.0.0",
        "status": "running"
    }
