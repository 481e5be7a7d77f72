"""
Shared fixtures: in-memory SQLite per test, a TestClient wired to it and
a switchable authenticated user.
"""

import os
import sys

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PUSH_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, get_db
from app.main import app
from app.services import background
from app.utils.dependencies import get_current_user, get_optional_user


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine, monkeypatch):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    # Background tasks open their own sessions on the same database
    monkeypatch.setattr(background, "SessionLocal", TestingSession)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Call login(user) to make subsequent requests run as that user"""
    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user
        return user
    return _login
