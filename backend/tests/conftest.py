"""Pytest configuration and fixtures."""

import os

# Must be set before the app (and its settings/engine) is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import timedelta
from decimal import Decimal
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.clock import utc_now
from app.core.rbac_policy import Role, permission_list
from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.session import get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *  # noqa: F401,F403
from app.models.category import Category
from app.models.stock import InventoryBatch
from app.models.supplier import Supplier
from app.models.supply import Supply
from app.models.user import User, UserRole

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
    from app.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory creating a user, optionally with a role record."""
    counter = {"n": 0}

    def _make(role: Role = None, email: str = None, password: str = "testpass123") -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password_hash=get_password_hash(password),
            name=f"Test User {counter['n']}",
            is_active=True,
        )
        db_session.add(user)
        db_session.flush()
        if role is not None:
            db_session.add(UserRole(
                user_id=user.id,
                role=role.value,
                permissions=permission_list(role),
                is_active=True,
            ))
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


def headers_for(user: User) -> dict:
    """Authorization headers carrying a token for the user."""
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(Role.ADMIN, email="admin@example.com")


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def nurse_headers(make_user) -> dict:
    return headers_for(make_user(Role.NURSE, email="nurse@example.com"))


@pytest.fixture
def viewer_headers(make_user) -> dict:
    return headers_for(make_user(Role.VIEWER, email="viewer@example.com"))


@pytest.fixture
def test_category(db_session: Session) -> Category:
    """Create a test category."""
    category = Category(name="Personal Protective Equipment", description="Masks, gloves, gowns", color="#3B82F6")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def test_supplier(db_session: Session) -> Supplier:
    """Create a test supplier."""
    supplier = Supplier(
        name="MedSupply Corp",
        contact_email="orders@medsupply.com",
        contact_phone="+1-555-0123",
        is_active=True,
        performance_rating=Decimal("4.5"),
        average_delivery_time=5,
    )
    db_session.add(supplier)
    db_session.commit()
    db_session.refresh(supplier)
    return supplier


@pytest.fixture
def make_supply(db_session: Session, test_category: Category, test_supplier: Supplier) -> Callable[..., Supply]:
    """Factory creating a supply with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides) -> Supply:
        counter["n"] += 1
        values = dict(
            name=f"Supply {counter['n']}",
            category_id=test_category.id,
            supplier_id=test_supplier.id,
            sku=f"SKU-{counter['n']:03d}",
            unit_of_measure="each",
            unit_cost=Decimal("2.00"),
            minimum_stock=100,
            maximum_stock=1000,
            reorder_point=50,
            reorder_quantity=500,
            is_active=True,
        )
        values.update(overrides)
        supply = Supply(**values)
        db_session.add(supply)
        db_session.commit()
        db_session.refresh(supply)
        return supply

    return _make


@pytest.fixture
def test_supply(make_supply) -> Supply:
    return make_supply(
        name="Surgical Masks",
        sku="SM-001",
        barcode="123456789012",
        unit_cost=Decimal("0.50"),
        minimum_stock=1000,
        maximum_stock=10000,
        reorder_point=2000,
        reorder_quantity=5000,
    )


@pytest.fixture
def make_batch(db_session: Session) -> Callable[..., InventoryBatch]:
    """Factory creating a batch for a supply."""
    counter = {"n": 0}

    def _make(supply: Supply, quantity: int, expires_in_days: int = None, **overrides) -> InventoryBatch:
        counter["n"] += 1
        expiration = utc_now() + timedelta(days=expires_in_days) if expires_in_days is not None else None
        batch = InventoryBatch(
            supply_id=supply.id,
            batch_number=overrides.pop("batch_number", f"B-{counter['n']:03d}"),
            quantity=quantity,
            expiration_date=overrides.pop("expiration_date", expiration),
            received_date=overrides.pop("received_date", utc_now()),
            unit_cost=overrides.pop("unit_cost", supply.unit_cost),
            location=overrides.pop("location", "Storage Room A"),
            **overrides,
        )
        db_session.add(batch)
        db_session.commit()
        db_session.refresh(batch)
        return batch

    return _make


@pytest.fixture
def auth_headers_for() -> Callable[[User], dict]:
    """Build authorization headers for an arbitrary user."""
    return headers_for
