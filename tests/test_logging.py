"""Tests for fx_trading.logging_config: JSON lines, request context, setup."""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from fx_trading.exceptions import (
    ConcurrencyConflictError,
    TradeValidationError,
    Violation,
)
from fx_trading.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Start from an unconfigured logger; hand the suite its DEBUG setup back."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def emitted():
    """Configure logging into a buffer; calling the fixture parses every line."""
    buffer = StringIO()
    configure_logging(handler=logging.StreamHandler(buffer))

    def _records() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    return _records


log = get_logger("test")


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_core_keys(self, emitted):
        log.info("hello")
        (record,) = emitted()
        assert record["message"] == "hello"
        assert record["level"] == "INFO"
        assert record["logger"] == "fx_trading.test"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_fields(self, emitted):
        log.info("sequence_allocated", extra={"value": 7, "booking_date": "2025-10-12"})
        (record,) = emitted()
        assert record["value"] == 7
        assert record["booking_date"] == "2025-10-12"

    def test_decimals_keep_scale_and_dates_are_iso(self, emitted):
        log.info(
            "trade_recorded",
            extra={
                "quote_amount": Decimal("1085000.0000"),
                "value_date": date(2025, 10, 14),
                "at": datetime(2025, 10, 12, 9, 30, tzinfo=timezone.utc),
            },
        )
        (record,) = emitted()
        assert record["quote_amount"] == "1085000.0000"
        assert record["value_date"] == "2025-10-14"
        assert record["at"] == "2025-10-12T09:30:00+00:00"

    def test_bound_context_attached(self, emitted):
        with LogContext.bind(correlation_id="abc-123", trade_reference="FX-20251012-0001"):
            log.info("inside")
        log.info("outside")

        inside, outside = emitted()
        assert inside["correlation_id"] == "abc-123"
        assert inside["trade_reference"] == "FX-20251012-0001"
        assert "correlation_id" not in outside
        assert "trade_reference" not in outside

    def test_context_wins_over_extra(self, emitted):
        with LogContext.bind(actor="alice"):
            log.info("clash", extra={"actor": "mallory"})
        (record,) = emitted()
        assert record["actor"] == "alice"

    def test_plain_exception(self, emitted):
        try:
            raise ValueError("boom")
        except ValueError:
            log.error("failed", exc_info=True)
        (record,) = emitted()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_conflict_attributes_extracted(self, emitted):
        try:
            raise ConcurrencyConflictError(12, expected_version=1, actual_version=3)
        except ConcurrencyConflictError:
            log.warning("concurrency_conflict", exc_info=True)
        (record,) = emitted()
        assert record["exc_code"] == "CONCURRENCY_CONFLICT"
        assert record["exc_trade_id"] == 12
        assert record["exc_expected_version"] == 1
        assert record["exc_actual_version"] == 3

    def test_violations_rendered_as_dicts(self, emitted):
        try:
            raise TradeValidationError(
                [Violation(field="base_amount", rule="positive", message="must be > 0")]
            )
        except TradeValidationError:
            log.info("trade_validation_failed", exc_info=True)
        (record,) = emitted()
        assert record["exc_code"] == "VALIDATION_FAILED"
        assert record["exc_violations"] == [
            {"field": "base_amount", "rule": "positive", "message": "must be > 0"}
        ]

    def test_default_level_drops_debug(self, emitted):
        log.debug("quiet")
        log.info("loud")
        assert [r["message"] for r in emitted()] == ["loud"]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_is_additive(self):
        LogContext.set(correlation_id="x")
        LogContext.set(actor="alice", trade_id=None)
        assert LogContext.get_all() == {"correlation_id": "x", "actor": "alice"}

    def test_clear(self):
        LogContext.set(correlation_id="x", trade_id="7")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_nests_and_restores(self):
        LogContext.set(actor="outer")
        with LogContext.bind(actor="inner"):
            with LogContext.bind(trade_reference="FX-20251012-0002"):
                assert LogContext.get_all() == {
                    "actor": "inner",
                    "trade_reference": "FX-20251012-0002",
                }
            assert LogContext.get_all() == {"actor": "inner"}
        assert LogContext.get_all() == {"actor": "outer"}

    def test_bind_stringifies_and_restores_absence(self):
        with LogContext.bind(trade_id=42):
            assert LogContext.get_all()["trade_id"] == "42"
        assert "trade_id" not in LogContext.get_all()

    def test_bind_skips_none(self):
        LogContext.set(actor="alice")
        with LogContext.bind(actor=None, correlation_id="c"):
            assert LogContext.get_all() == {"actor": "alice", "correlation_id": "c"}

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor="bob"):
                raise RuntimeError
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(event_id="x")
        with pytest.raises(TypeError):
            LogContext.bind(producer="y")


# ---------------------------------------------------------------------------
# configure_logging / get_logger
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_first_call_wins(self):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first, level="WARNING")
        configure_logging(handler=logging.StreamHandler(StringIO()), level="DEBUG")

        root = logging.getLogger("fx_trading")
        assert root.handlers == [first]
        assert root.level == logging.WARNING
        assert isinstance(first.formatter, StructuredFormatter)
        assert root.propagate is False

    def test_reset_allows_reconfiguration(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        assert logging.getLogger("fx_trading").handlers == []
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=second)
        assert logging.getLogger("fx_trading").handlers == [second]

    def test_get_logger_namespaces(self):
        assert get_logger("services.trade").name == "fx_trading.services.trade"

    def test_children_inherit_handler_and_level(self):
        buffer = StringIO()
        configure_logging(handler=logging.StreamHandler(buffer), level=logging.DEBUG)
        get_logger("db.engine").debug("transaction_started")
        record = json.loads(buffer.getvalue())
        assert record["logger"] == "fx_trading.db.engine"
