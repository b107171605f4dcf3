"""
Test configuration and fixtures.

Each test gets a fresh in-memory SQLite database and an empty session store.
The app runs unchanged; only the database session dependency is swapped.
"""
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Set testing environment before the app reads its config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"

from disaster_app import config  # noqa: E402
from disaster_app.db import get_session  # noqa: E402
from disaster_app.main import app  # noqa: E402
from disaster_app.models import User  # noqa: E402
from disaster_app.routers.auth import hash_password  # noqa: E402
from disaster_app.sessions import (  # noqa: E402
    USER_EMAIL,
    USER_ID,
    USER_NAME,
    USER_ROLE,
    create_session_token,
    session_store,
)

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh database for each test"""
    SQLModel.metadata.create_all(test_engine)
    with Session(test_engine) as session:
        yield session
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def clear_session_store():
    session_store.clear()
    yield
    session_store.clear()


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Test client sharing the test database session; redirects are not followed."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app, follow_redirects=False)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session: Session):
    """Store a user with a real password digest, like a registered account."""

    def _make_user(
        email: str = "test@example.com",
        password: str = "Test123!",
        role: str = "User",
        full_name: str = "Test User",
    ) -> User:
        user = User(
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def login_as(client: TestClient):
    """Start a session directly in the store and hand its cookie to the client."""

    def _login_as(
        email: str = "test@example.com",
        role: str = "User",
        user_id: int = 1,
        user_name: str = "Test User",
    ) -> str:
        token = session_store.create(
            {
                USER_EMAIL: email,
                USER_ROLE: role,
                USER_ID: user_id,
                USER_NAME: user_name,
            }
        )
        client.cookies.set(config.SESSION_COOKIE_NAME, create_session_token(token), path="/")
        return token

    return _login_as
