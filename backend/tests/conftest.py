# backend/tests/conftest.py
"""
Pytest configuration.

Settings are required at import time, so the environment is set up
BEFORE any app import. Every test gets a fresh in-memory SQLite database
and a mocked Redis client.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import enable_sqlite_fk, get_db
from app.main import app
from app.models import Base
from app.models.generated import LessonBookings, LessonSlots, Users
from app.services.lessons.config import SchedulingConfig

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
event.listen(engine, "connect", enable_sqlite_fk)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    """Events go to a Mock instead of Redis."""
    redis = Mock()
    monkeypatch.setattr("app.services.events.redis_client", redis)
    return redis


@pytest.fixture
def utc_config():
    """Scheduling config anchored at UTC, so local == stored times."""
    return SchedulingConfig(default_timezone="UTC")


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def make_user(db):
    def _make(name="Laia", surname="Puig", email=None, is_admin=False):
        user = Users(name=name, surname=surname, email=email, is_admin=int(is_admin))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_slot(db):
    def _make(start_at=datetime(2025, 6, 2, 15, 0), minutes=60, max_capacity=4,
              location="Soses", status="open", **extra):
        slot = LessonSlots(
            start_at=start_at,
            end_at=start_at + timedelta(minutes=minutes),
            max_capacity=max_capacity,
            location=location,
            status=status,
            **extra,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _make


@pytest.fixture
def make_booking(db, make_user):
    def _make(slot, user=None, group_size=1, allow_fill=True, status="confirmed"):
        user = user or make_user()
        booking = LessonBookings(
            slot_id=slot.id,
            user_id=user.id,
            group_size=group_size,
            allow_fill=int(allow_fill),
            status=status,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", surname=None, email="admin@club.test", is_admin=True)


@pytest.fixture
def admin_headers(admin):
    return {"X-User-Id": str(admin.id)}
