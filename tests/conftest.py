"""
Pytest configuration and fixtures for Activity Stream tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from activity_stream.database import Base, get_db
from activity_stream.limiter import limiter
from activity_stream.main import app
from activity_stream.models.user import User
from activity_stream.auth import create_access_token
from activity_stream.component import create_component
from activity_stream.store import ActivityStore

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    yield _test_session


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    Base.metadata.create_all(bind=engine)
    _test_session = TestingSessionLocal()
    app.dependency_overrides[get_db] = get_test_db

    yield _test_session

    app.dependency_overrides.clear()
    _test_session.close()
    _test_session = None
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def component():
    """A fresh component (hooks, actions, feed cache) shared with the app."""
    activity_component = create_component()
    app.state.component = activity_component
    return activity_component


@pytest.fixture(scope="function")
def store(db, component):
    return ActivityStore(db, component)


@pytest.fixture(scope="function")
def create_user(db):
    """Factory for users; the nicename defaults to the login."""
    def _create(login: str, nicename: str = None, display_name: str = None, id: int = None) -> User:
        user = User(
            id=id,
            user_login=login,
            user_nicename=nicename or login,
            display_name=display_name or login.title(),
            email=f"{login}@example.com",
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create


@pytest.fixture(scope="function")
def test_user(create_user):
    return create_user("alice", display_name="Alice Smith")


@pytest.fixture(scope="function")
def other_user(create_user):
    return create_user("bob", display_name="Bob Jones")


@pytest.fixture(scope="function")
def jane(create_user):
    return create_user("jane.doe", nicename="jane-doe", display_name="Jane Doe", id=42)


@pytest.fixture(scope="function")
def client(db, component):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def auth_headers(test_user):
    """Get auth headers for the test user."""
    return {"Authorization": f"Bearer {create_access_token({'sub': test_user.id})}"}


@pytest.fixture(scope="function")
def other_auth_headers(other_user):
    return {"Authorization": f"Bearer {create_access_token({'sub': other_user.id})}"}
