"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; tests run against in-memory SQLite in local civil time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-rewards-engine-tests")
os.environ["TZ"] = "Asia/Kolkata"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db
from app.core.security import create_access_token

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    Employee,
    Role,
    AuditLog,
    AttendanceRecord,
    WorkLog,
    PointTransaction,
    Achievement,
    EmployeeAchievement,
    LeaderboardEntry,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_employee(db):
    """Factory creating active employees with sequential codes"""
    counter = {"n": 0}

    def _make(name=None, role=Role.EMPLOYEE, active=True):
        counter["n"] += 1
        emp = Employee(
            emp_code=f"EMP{counter['n']:03d}",
            name=name or f"Employee {counter['n']}",
            role=role.value,
            active=active,
        )
        db.add(emp)
        db.commit()
        db.refresh(emp)
        return emp
    return _make


@pytest.fixture
def employee(make_employee):
    return make_employee(name="Regular Employee")


@pytest.fixture
def admin(make_employee):
    return make_employee(name="Admin User", role=Role.ADMIN)


@pytest.fixture
def hr_user(make_employee):
    return make_employee(name="HR User", role=Role.HR)


@pytest.fixture
def auth_headers():
    """Bearer header as issued by the identity provider"""
    def _headers(emp) -> dict:
        token = create_access_token({"sub": str(emp.id)})
        return {"Authorization": f"Bearer {token}"}
    return _headers
