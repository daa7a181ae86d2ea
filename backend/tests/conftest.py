"""Shared test fixtures for all test modules."""

import contextlib
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import coupon_manager.models  # noqa: F401
from coupon_manager.core import database as db_module
from coupon_manager.core.database import Base, create_db_engine
from coupon_manager.core.locks import coupon_locks
from coupon_manager.models.coupon import Coupon, CouponType

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_db_engine("sqlite://", poolclass=StaticPool)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Fixed clock used by tests that depend on the current time
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    coupon_locks.reset()
    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository testing."""
    gen = db_module.get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def make_coupon(db, **overrides) -> Coupon:
    """Insert a coupon row directly, bypassing service validation."""
    coupon_type = overrides.pop("type", CouponType.MONEY)
    values = {
        "code": "CODE-1",
        "company": "Acme",
        "type": coupon_type.value,
        "date_added": NOW,
        "created_at": NOW,
        "updated_at": NOW,
    }
    if coupon_type == CouponType.MONEY:
        values.update(
            original_amount=Decimal("100"),
            remaining_amount=Decimal("100"),
            currency="NIS",
            is_used=False,
        )
    else:
        values.update(product_description="Massage", is_used=False)
    values.update(overrides)
    coupon = Coupon(**values)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def days_from_now(days: int) -> date:
    return (NOW + timedelta(days=days)).date()
