"""
Pytest configuration and fixtures for testing.
"""
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.session import Base, get_db
from app.models import *  # noqa: F401,F403 - registers every table on Base.metadata
from app.seed.seed_data import seed_rbac
from common_utils.auth.utils import create_access_token
from main import app


# Test database URL - using in-memory SQLite for tests
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_db():
    """
    Create a fresh test database for each test function.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(test_db):
    """
    Test client sharing the test session. Startup hooks are not run, so
    nothing touches the configured database.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def seeded_db(test_db):
    """Default permissions, roles and users."""
    seed_rbac(test_db)
    return test_db


def _bearer(role):
    return f"Bearer {create_access_token(user_id=1, role=role)}"


@pytest.fixture
def superadmin_token(seeded_db):
    return _bearer("superadmin")


@pytest.fixture
def admin_token(seeded_db):
    return _bearer("admin")


@pytest.fixture
def manager_token(seeded_db):
    return _bearer("manager")


@pytest.fixture
def driver_token(seeded_db):
    return _bearer("driver")


@pytest.fixture
def make_workbook():
    """Build .xlsx bytes from a header row and data rows."""
    def _make(headers, rows):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(headers)
        for row in rows:
            sheet.append(row)
        buffer = BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _make
