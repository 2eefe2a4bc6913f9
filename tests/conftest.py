"""Pytest configuration and fixtures."""

import os
import tempfile

# Must be set before the application modules read their settings.
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret"
os.environ["REFRESH_TOKEN_SECRET"] = "test-refresh-secret"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="tasktrack-test-uploads-")
os.environ["APP_ENV"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.models.task import Task  # noqa: E402, F401
from app.models.user import User  # noqa: E402, F401
from app.services.auth import get_auth_service  # noqa: E402
from app.services.tokens import get_token_service  # noqa: E402


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test user with a live session and return its details and tokens."""
    user = get_auth_service().register(db_session, "Test User", "test@example.com", "password123")
    pair = get_token_service().issue_session_pair(db_session, user)

    return {
        "user_id": user.id,
        "name": user.name,
        "email": user.email,
        "password": "password123",
        "access_token": pair.access_token,
        "refresh_token": pair.refresh_token,
    }


@pytest.fixture(name="use_cookies")
def use_cookies_fixture(client: TestClient):
    """Replace the client's cookie jar with exactly the given cookies."""

    def _use_cookies(**cookies: str) -> None:
        client.cookies.clear()
        for key, value in cookies.items():
            client.cookies.set(key, value)

    return _use_cookies


@pytest.fixture(name="auth_client")
def auth_client_fixture(client: TestClient, test_user: dict, use_cookies):
    """Test client carrying the test user's session cookies."""
    use_cookies(accessToken=test_user["access_token"], refreshToken=test_user["refresh_token"])
    return client
