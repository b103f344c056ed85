"""Shared fixtures: in-memory SQLite database, sample rows, gateway doubles."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ZONE_TIMEZONE"] = "UTC"
os.environ["API_KEY"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""

import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock, AsyncMock
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import User, Vehicle, ParkingZone
from app.models.user import UserRole
from app.models.parking_zone import LocationType
from app.services.payment_gateway import ChargeResult, PaymentGateway, RefundResult
from app.services.restrictions import sample_restrictions

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monday 1 June 2026, 10:00 (zone time is UTC in tests)
MONDAY_10AM = datetime(2026, 6, 1, 10, 0)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def enforce_foreign_keys(db):
    """SQLite ignores FOREIGN KEY constraints unless asked; the shared connection is reset afterwards."""
    db.execute(text("PRAGMA foreign_keys=ON"))
    yield
    db.rollback()
    db.execute(text("PRAGMA foreign_keys=OFF"))


@pytest.fixture
def make_user(db):
    def _make(email="driver@example.com", role=UserRole.USER, name="Test Driver"):
        user = User(email=email, name=name, phone="+12035550100", role=role, created_at=MONDAY_10AM)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_zone(db):
    def _make(zone_number="A-101", location_type=LocationType.STREET, max_hours=4,
              restrictions=None, is_active=True):
        zone = ParkingZone(
            zone_number=zone_number,
            zone_name=f"Zone {zone_number}",
            location_type=location_type,
            rate_per_hour=Decimal("1.25"),
            max_duration_hours=max_hours,
            address="1000 Chapel St",
            restrictions_json=restrictions.model_dump() if restrictions else None,
            is_active=is_active,
            created_at=MONDAY_10AM,
        )
        db.add(zone)
        db.commit()
        db.refresh(zone)
        return zone
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def vehicle(db, user):
    v = Vehicle(user_id=user.id, license_plate="ABC1234", state="CT", created_at=MONDAY_10AM)
    db.add(v)
    db.commit()
    db.refresh(v)
    return v


@pytest.fixture
def zone(make_zone):
    return make_zone()


@pytest.fixture
def restricted_zone(make_zone):
    return make_zone(zone_number="B-202", restrictions=sample_restrictions())


@pytest.fixture
def demo_gateway():
    return PaymentGateway(secret_key="", webhook_secret="", demo_mode=True)


@pytest.fixture
def gateway():
    """Gateway double: charges succeed, refunds succeed. Override per test."""
    gw = MagicMock(spec=PaymentGateway)
    gw.create_charge = AsyncMock(
        side_effect=lambda amount, metadata=None, confirm=False, payment_method=None: ChargeResult(
            "pi_test_ext", None, "succeeded" if confirm else "requires_payment_method", Decimal(str(amount)))
    )
    gw.create_refund = AsyncMock(
        side_effect=lambda charge_id, amount, metadata=None: RefundResult("re_test", "succeeded", Decimal(str(amount)))
    )
    return gw


@pytest.fixture
def client(db, demo_gateway):
    """TestClient sharing the test database; payments run in demo mode."""
    from fastapi.testclient import TestClient
    from app.database import get_db
    from app.main import app
    from app.services.payment_gateway import get_payment_gateway

    def _get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: demo_gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
