"""
Pytest configuration and shared fixtures.

- Fixed clock
- SQLite in-memory session for the persistence tests
- Circuit breaker reset between tests
"""

from datetime import datetime, timezone
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from themepark_booking.application.interfaces.clock import FakeClock
from themepark_booking.infrastructure.circuit_breaker import reset_breakers
from themepark_booking.infrastructure.db.engine import build_sessionmaker, create_schema

FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# CLOCK
# ============================================================================

@pytest.fixture
def fake_clock():
    return FakeClock(FIXED_NOW)


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def test_engine():
    """SQLite in-memory engine shared across connections of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return build_sessionmaker(test_engine)


@pytest.fixture
def db_session(session_maker) -> Generator[Session, None, None]:
    """Session inside a transaction that is rolled back after the test."""
    with session_maker() as session:
        session.begin()
        yield session
        session.rollback()


# ============================================================================
# HOOKS
# ============================================================================

@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Drop process-wide breakers so an open circuit never leaks between tests."""
    reset_breakers()
    yield
    reset_breakers()
