"""
Pytest fixtures for the FX trade recorder test suite.

Provides:
- A fresh file-backed SQLite database per test (WAL needs a real file)
- A DeterministicClock pinned to TEST_NOW
- A TradeService wired to the writer/reader session factories
- A request builder and a captured_logs fixture

Environment Variables:
- DATABASE_URL: run the suite against another database, e.g.
  postgresql://fx:fx@localhost/fx_trading_test.  Tables are dropped and
  recreated for every test.
"""

import json
import logging
import os
from datetime import date, datetime, timedelta, timezone
from io import StringIO

import pytest

from fx_config.schema import ValidationSettings
from fx_trading.db.engine import (
    create_tables,
    dialect_name,
    drop_tables,
    get_engine,
    get_read_session_factory,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from fx_trading.db.immutability import register_immutability_listeners
from fx_trading.domain.clock import DeterministicClock
from fx_trading.domain.dtos import TradeRequest
from fx_trading.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fx_trading.services.trade_service import TradeService

TEST_DATE = date(2025, 10, 12)
TEST_NOW = datetime(2025, 10, 12, 9, 30, 0, tzinfo=timezone.utc)
TEST_ACTOR = "test-user"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
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
    Capture fx_trading logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, trade_service, make_request):
            trade_service.record_trade(make_request(), acting_user="alice")
            logs = captured_logs()
            assert any(r["message"] == "trade_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fx_trading")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


def get_database_url(tmp_path) -> str:
    """DATABASE_URL if set, otherwise a SQLite file under tmp_path."""
    return os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_path / 'fx_trading.db'}"


@pytest.fixture
def engine(tmp_path):
    """
    Initialize writer/reader engines on a clean schema.

    Generous pool and busy timeout so concurrency tests measure contention,
    not pool exhaustion.
    """
    init_engine_from_url(
        get_database_url(tmp_path),
        pool_size=10,
        max_overflow=60,
        busy_timeout_ms=30000,
    )
    if dialect_name() != "sqlite":
        drop_tables()
    create_tables(install_triggers=True)
    register_immutability_listeners()
    yield get_engine()
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def read_session_factory(engine):
    return get_read_session_factory()


@pytest.fixture
def session(session_factory):
    """A writer session for tests that drive lower-level services directly."""
    sess = session_factory()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def validation_settings() -> ValidationSettings:
    return ValidationSettings()


@pytest.fixture
def trade_service(session_factory, read_session_factory, clock, validation_settings):
    return TradeService(
        session_factory=session_factory,
        read_session_factory=read_session_factory,
        clock=clock,
        settings=validation_settings,
    )


@pytest.fixture
def make_request():
    """
    Build a valid TradeRequest; keyword overrides replace single fields.

    Default: BUY 1,000,000.00 EUR/USD at 1.085000, trade date TEST_DATE,
    value date T+2.
    """

    def _make(**overrides) -> TradeRequest:
        values = dict(
            trade_date=TEST_DATE,
            value_date=TEST_DATE + timedelta(days=2),
            direction="BUY",
            base_currency="EUR",
            quote_currency="USD",
            base_amount="1000000.00",
            exchange_rate="1.085000",
            counterparty="Bank of Testing",
            trader="jdoe",
        )
        values.update(overrides)
        return TradeRequest(**values)

    return _make


@pytest.fixture
def recorded_trade(trade_service, make_request):
    """One committed PENDING trade."""
    return trade_service.record_trade(make_request(), acting_user=TEST_ACTOR)
