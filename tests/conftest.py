import os

# Settings are read at import time; provide test values before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_orgtasks.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jose import jwt

from orgtasks.database import get_db
from orgtasks.models.base import Base
from orgtasks.config import settings
# Import all model classes to ensure they're registered with SQLAlchemy
from orgtasks.models.organization import Organization
from orgtasks.models.user import User
from orgtasks.models.task import Task
from orgtasks.models.audit_log import AuditLog
from orgtasks.models.role import Role
# Import FastAPI app AFTER model imports
from orgtasks.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_test_token(user_id: str = "owner-root", expired: bool = False) -> str:
    """
    Generate valid JWT token for testing.

    Args:
        user_id: User ID to embed in 'sub' claim
        expired: If True, create expired token

    Returns:
        Encoded JWT token
    """
    if expired:
        exp = datetime.now(UTC) - timedelta(minutes=5)
    else:
        exp = datetime.now(UTC) + timedelta(minutes=15)

    payload = {"sub": user_id, "exp": exp, "iat": datetime.now(UTC)}

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")
    return token


def headers_for(user_id: str) -> dict[str, str]:
    """Authorization headers for the given user"""
    return {"Authorization": f"Bearer {create_test_token(user_id=user_id)}"}


@pytest.fixture
def org_tree(db_session):
    """
    Organization tree used across API tests:

        root (0)
        ├── eng (1)
        │   └── frontend (2)
        └── sales (1)
        other (0)
    """
    orgs = {
        "root": Organization(id="root", name="Root", parent_id=None, level=0),
        "eng": Organization(id="eng", name="Engineering", parent_id="root", level=1),
        "frontend": Organization(id="frontend", name="Frontend", parent_id="eng", level=2),
        "sales": Organization(id="sales", name="Sales", parent_id="root", level=1),
        "other": Organization(id="other", name="Other Company", parent_id=None, level=0),
    }
    db_session.add_all(orgs.values())
    db_session.commit()
    return orgs


@pytest.fixture
def users(db_session, org_tree):
    """One user per role/organization combination the tests need"""
    people = {
        "owner-root": User(id="owner-root", email="owner@example.com", organization_id="root", role=Role.OWNER.value),
        "admin-eng": User(id="admin-eng", email="admin.eng@example.com", organization_id="eng", role=Role.ADMIN.value),
        "admin-frontend": User(
            id="admin-frontend", email="admin.frontend@example.com", organization_id="frontend", role=Role.ADMIN.value
        ),
        "viewer-frontend": User(
            id="viewer-frontend", email="viewer.frontend@example.com", organization_id="frontend", role=Role.VIEWER.value
        ),
        "viewer-eng": User(id="viewer-eng", email="viewer.eng@example.com", organization_id="eng", role=Role.VIEWER.value),
        "admin-sales": User(id="admin-sales", email="admin.sales@example.com", organization_id="sales", role=Role.ADMIN.value),
    }
    db_session.add_all(people.values())
    db_session.commit()
    return people


@pytest.fixture
def tasks(db_session, users):
    """Tasks spread over the tree"""
    items = {
        "t-frontend": Task(id="t-frontend", title="Fix navbar", organization_id="frontend", created_by_id="admin-frontend"),
        "t-eng": Task(id="t-eng", title="Plan sprint", organization_id="eng", created_by_id="admin-eng"),
        "t-root": Task(id="t-root", title="Company offsite", organization_id="root", created_by_id="owner-root"),
        "t-sales": Task(id="t-sales", title="Q3 pipeline", organization_id="sales", created_by_id="admin-sales"),
    }
    db_session.add_all(items.values())
    db_session.commit()
    return items


@pytest.fixture
def owner_headers(users):
    return headers_for("owner-root")


@pytest.fixture
def admin_eng_headers(users):
    return headers_for("admin-eng")


@pytest.fixture
def viewer_frontend_headers(users):
    return headers_for("viewer-frontend")
