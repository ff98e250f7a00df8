"""Pytest configuration and fixtures."""

import os

# Keep the application engine off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import date
from typing import Callable, Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rbac import UserRole
from app.core.security import get_password_hash, create_access_token
from app.db.base import Base
from app.db.session import configure_sqlite, get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *
from app.models.asset import Asset, AssetStatus
from app.models.category import Category
from app.models.department import Department
from app.models.inventory import InventoryPlan, PlanStatus, ScopeType
from app.models.location import Location
from app.models.user import User

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from app.core.rate_limit import limiter as global_limiter
    global_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    global_limiter.enabled = True
    app.dependency_overrides.clear()


def _create_user(db_session: Session, email: str, role: UserRole) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash("testpass123"),
        role=role,
        name=email.split("@")[0].title(),
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_user(db_session: Session) -> User:
    """Create a test user (admin)."""
    return _create_user(db_session, "test@example.com", UserRole.ADMIN)


@pytest.fixture
def auth_token(test_user: User) -> str:
    """Get an authentication token for the test user."""
    return create_access_token(
        data={"sub": str(test_user.id), "email": test_user.email, "role": test_user.role.value}
    )


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Get authentication headers."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def manager_user(db_session: Session) -> User:
    return _create_user(db_session, "manager@example.com", UserRole.MANAGER)


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    return _headers_for(manager_user)


@pytest.fixture
def staff_user(db_session: Session) -> User:
    return _create_user(db_session, "staff@example.com", UserRole.STAFF)


@pytest.fixture
def staff_headers(staff_user: User) -> dict:
    return _headers_for(staff_user)


@pytest.fixture
def plain_user_headers(db_session: Session) -> dict:
    return _headers_for(_create_user(db_session, "viewer@example.com", UserRole.USER))


@pytest.fixture
def org(db_session: Session) -> dict:
    """Two departments, two locations and a two-level category tree."""
    it_dept = Department(name="IT", code="IT")
    hr_dept = Department(name="HR", code="HR")
    room_a = Location(name="Room A", code="RA", building="HQ", floor="3")
    room_b = Location(name="Room B", code="RB", building="HQ", floor="4")
    it_cat = Category(name="IT", code="IT")
    db_session.add_all([it_dept, hr_dept, room_a, room_b, it_cat])
    db_session.flush()

    laptop_cat = Category(name="Laptop", code="IT-LAPTOP", parent_id=it_cat.id)
    monitor_cat = Category(name="Monitor", code="IT-MONITOR", parent_id=it_cat.id)
    db_session.add_all([laptop_cat, monitor_cat])
    db_session.commit()

    return {
        "it": it_dept,
        "hr": hr_dept,
        "room_a": room_a,
        "room_b": room_b,
        "laptop": laptop_cat,
        "monitor": monitor_cat,
    }


@pytest.fixture
def make_asset(db_session: Session, org: dict) -> Callable[..., Asset]:
    """Factory for register rows; defaults to an in-use IT laptop in Room A."""

    def _make(asset_no: str, **overrides) -> Asset:
        values = {
            "asset_no": asset_no,
            "name": "ASUS Laptop",
            "category_id": org["laptop"].id,
            "department_id": org["it"].id,
            "location_id": org["room_a"].id,
            "status": AssetStatus.IN_USE,
            "acquire_date": date(2023, 9, 15),
        }
        values.update(overrides)
        asset = Asset(**values)
        db_session.add(asset)
        db_session.commit()
        db_session.refresh(asset)
        return asset

    return _make


@pytest.fixture
def make_plan(db_session: Session) -> Callable[..., InventoryPlan]:
    """Factory for plans; defaults to an in-progress plan over all assets."""

    def _make(status: PlanStatus = PlanStatus.IN_PROGRESS, **overrides) -> InventoryPlan:
        values = {
            "name": "Q1 count",
            "start_date": date(2025, 1, 1),
            "end_date": date(2025, 1, 31),
            "scope_type": ScopeType.ALL,
            "scope_ids": [],
            "status": status,
        }
        values.update(overrides)
        plan = InventoryPlan(**values)
        db_session.add(plan)
        db_session.commit()
        db_session.refresh(plan)
        return plan

    return _make
