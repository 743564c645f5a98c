"""
Pytest fixtures for the obligation engine test suite.

Provides:
- A fresh in-memory SQLite database per test (tables created, foreign keys on)
- A file-backed SQLite database for multi-threaded tests
- DeterministicClock, settings and ObligationService wired to the test database
- Factories for ledger transactions, categories and definition input

Environment Variables:
- DATABASE_URL: Optional PostgreSQL URL.  Only tests marked ``postgres``
  use it; they are skipped when it is not set.
"""

import json
import logging
import os
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session, sessionmaker

from obligation_config import get_active_config
from obligation_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from obligation_kernel.domain.clock import DeterministicClock
from obligation_kernel.domain.dtos import DefinitionInput
from obligation_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from obligation_kernel.models.category import Category
from obligation_kernel.models.ledger_transaction import LedgerTransaction
from obligation_services.obligation_service import ObligationService

# Reference "today" shared by the suite
TEST_NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


def definition_input(**overrides) -> DefinitionInput:
    """Valid monthly DefinitionInput; keyword overrides replace fields."""
    fields = {
        "name": "Car insurance",
        "amount": Decimal("12000"),
        "interval_months": 1,
        "anchor_date": date(2025, 1, 15),
    }
    fields.update(overrides)
    return DefinitionInput(**fields)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture obligation_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.create_definition(definition_input())
            logs = captured_logs()
            assert any(r["message"] == "definition_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("obligation_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL (DATABASE_URL)"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Fresh in-memory database with all tables for one test."""
    reset_engine()
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def file_session_factory(tmp_path) -> Generator[sessionmaker[Session], None, None]:
    """
    File-backed SQLite database.

    Unlike ``session_factory`` every session gets its own connection, so
    threads really contend for the database lock.
    """
    reset_engine()
    init_engine_from_url(f"sqlite:///{tmp_path / 'obligations.db'}", sqlite_busy_timeout=30)
    create_tables()
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def postgres_session_factory() -> Generator[sessionmaker[Session], None, None]:
    """PostgreSQL database from DATABASE_URL; skips when unset."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not set")
    from obligation_kernel.db.engine import drop_tables

    reset_engine()
    init_engine_from_url(url)
    drop_tables()
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


# =============================================================================
# Clock / settings / service fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def settings():
    return get_active_config()


@pytest.fixture
def service(session_factory, deterministic_clock, settings) -> ObligationService:
    return ObligationService(session_factory, clock=deterministic_clock, settings=settings)


# =============================================================================
# Reference data factories
# =============================================================================


@pytest.fixture
def add_transaction(session_factory):
    """Factory fixture inserting a ledger transaction; returns its id."""

    def _add(transaction_date: date, amount: str | Decimal, label: str = "") -> UUID:
        with session_scope(session_factory) as session:
            row = LedgerTransaction(
                transaction_date=transaction_date,
                amount=Decimal(str(amount)),
                label=label,
            )
            session.add(row)
            session.flush()
            return row.id

    return _add


@pytest.fixture
def add_category(session_factory):
    """Factory fixture inserting a category; returns its id."""

    def _add(name: str = "Taxes") -> UUID:
        with session_scope(session_factory) as session:
            row = Category(name=name)
            session.add(row)
            session.flush()
            return row.id

    return _add
