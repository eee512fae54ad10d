"""
Pytest configuration for auth service tests.

Environment is set before the service modules are imported, since settings
and the database engine are created at import time.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(tempfile.gettempdir(), 'login_platform_test.db')}"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GOOGLE_CLIENT_ID"] = "1234567890-testclient.apps.googleusercontent.com"

import pytest
from fastapi.testclient import TestClient

from login_platform.login_platform.auth_service.main import app
from login_platform.login_platform.auth_service.db import Base, engine, SessionLocal
from login_platform.login_platform.auth_service.models import User
from login_platform.login_platform.auth_service.auth import hash_password

API = "/api/v1/auth"


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def reset_database():
    # Drop all tables and recreate them before each test
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    yield session
    session.close()


def ensure_user(email="user@example.com", password="Secret123!", name="Test User", is_active=True, google_id=None):
    db = SessionLocal()
    try:
        user = User(
            name=name,
            email=email,
            password=hash_password(password) if password else None,
            is_active=is_active,
            google_id=google_id,
        )
        db.add(user)
        db.commit()
        # return stable scalar values to avoid DetachedInstance
        return {"id": user.id, "email": email, "password": password}
    finally:
        db.close()
