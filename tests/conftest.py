"""Pytest configuration and fixtures."""

import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import src.services.realtime as realtime_module
from src.database import Base, get_db
from src.main import app
from src.models import Group, PantryCategory, User
from src.services.auth import create_access_token


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: int | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/pantry", "/pantry_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function", autouse=True)
def fake_redis():
    """Replace the publishing Redis client so no test needs a Redis server."""
    mock_redis = MagicMock()
    realtime_module._sync_redis = mock_redis
    yield mock_redis
    realtime_module._sync_redis = None


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def group(db):
    """A household group."""
    group = Group(name="Home")
    db.add(group)
    db.commit()
    return group


@pytest.fixture
def other_group(db):
    """A second, unrelated household."""
    group = Group(name="Neighbours")
    db.add(group)
    db.commit()
    return group


@pytest.fixture
def user(db, group):
    """A member of `group`."""
    user = User(email="test@example.com", name="Test User", group_id=group.id)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def housemate(db, group):
    """A second member of `group`."""
    user = User(email="housemate@example.com", name="Housemate", group_id=group.id)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def outsider(db, other_group):
    """A member of `other_group`."""
    user = User(email="outsider@example.com", name=None, group_id=other_group.id)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def dairy(db):
    """A predefined category."""
    category = PantryCategory.predefined("Dairy")
    db.add(category)
    db.commit()
    return category


@pytest.fixture
def produce(db):
    """A second predefined category."""
    category = PantryCategory.predefined("Produce")
    db.add(category)
    db.commit()
    return category


def make_auth_headers(user: User) -> AuthHeaders:
    token = create_access_token(user_id=user.id, email=user.email)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user.id)


@pytest.fixture
def auth_headers(client, user):
    """Auth headers for `user`."""
    return make_auth_headers(user)


@pytest.fixture
def outsider_headers(client, outsider):
    """Auth headers for `outsider`."""
    return make_auth_headers(outsider)


@pytest.fixture
def session_factory():
    """Factory for extra sessions, e.g. to act as a second concurrent client."""
    return TestingSessionLocal


@pytest.fixture
def headers_for():
    """Build auth headers for an arbitrary user."""
    return make_auth_headers
