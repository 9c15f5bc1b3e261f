# tests/conftest.py
"""Shared fixtures: an in-memory SQLite session per test and a TestClient bound to it."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import date, datetime
from types import SimpleNamespace
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from collision_os.database import create_tables, get_db


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db):
    from collision_os.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager: startup would create tables on the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_unit(unit_id, year=2023, total_miles=0, vehicle_type="sedan", features="", status="available"):
    return SimpleNamespace(
        id=unit_id, year=year, total_miles=total_miles, vehicle_type=vehicle_type,
        features=features, status=status, status_changed_at=None, status_changed_by=None, updated_by=None,
    )


def make_assignment(unit_id, start, end, status="confirmed"):
    return SimpleNamespace(unit_id=unit_id, status=status, pickup_date=start, expected_return_date=end)


def make_part(part_id, status="needed", part_number=None, unit_cost=100, quantity=1, vendor=None):
    return SimpleNamespace(
        id=part_id, status=status, part_number=part_number or f"PN-{part_id}", part_description="Bumper cover",
        unit_cost=unit_cost, quantity=quantity, vendor=vendor, priority="normal", sourcing_notes=None,
        expected_delivery_date=None, status_changed_at=datetime(2024, 9, 1), status_changed_by=None,
        updated_by=None, vendor_id=None,
    )


def make_reservation(res_id=1, status="confirmed", customer_id="CUST-1", checkout_at=None, checkout_odometer=None):
    return SimpleNamespace(
        id=res_id, status=status, customer_id=customer_id, pickup_date=date(2024, 9, 16),
        expected_return_date=date(2024, 9, 20), checkout_at=checkout_at, checkout_odometer=checkout_odometer,
        status_changed_at=None, status_changed_by=None, updated_by=None,
    )
