"""
Unit tests for TradeSnapshot / TradeAuditEntry serialization.

Snapshots are the audit trail's payload: the JSON must be canonical and
decimals must never pass through floats.
"""

import json
from dataclasses import FrozenInstanceError, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from fx_trading.domain.dtos import TradeAuditEntry, TradeSnapshot, canonical_json
from fx_trading.models.trade import TradeDirection, TradeStatus
from fx_trading.models.trade_audit import AuditAction

NOW = datetime(2025, 10, 12, 9, 30, tzinfo=timezone.utc)


def _trade(**overrides):
    values = dict(
        id=1,
        trade_reference="FX-20251012-0001",
        trade_date=date(2025, 10, 12),
        value_date=date(2025, 10, 14),
        direction=TradeDirection.BUY,
        base_currency="EUR",
        quote_currency="USD",
        base_amount=Decimal("1000000.0000"),
        exchange_rate=Decimal("1.085000"),
        quote_amount=Decimal("1085000.0000"),
        counterparty="Bank of Testing",
        trader="jdoe",
        notes=None,
        status=TradeStatus.PENDING,
        version=1,
        created_by="alice",
        created_at=NOW,
        updated_by="alice",
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestTradeSnapshot:

    def test_enums_become_values(self):
        snapshot = TradeSnapshot.from_model(_trade())
        assert snapshot.direction == "BUY"
        assert snapshot.status == "PENDING"

    def test_json_is_canonical(self):
        text = TradeSnapshot.from_model(_trade()).to_json()
        data = json.loads(text)
        assert list(data) == sorted(data)
        assert ", " not in text and ": " not in text
        assert text == canonical_json(data)

    def test_decimals_serialize_as_plain_strings_at_scale(self):
        data = TradeSnapshot.from_model(
            _trade(base_amount=Decimal("1234567.8901"), quote_amount=Decimal("1E+6"))
        ).to_dict()
        assert data["base_amount"] == "1234567.8901"
        assert data["exchange_rate"] == "1.085000"
        assert data["quote_amount"] == "1000000"

    def test_dates_are_iso(self):
        data = TradeSnapshot.from_model(_trade()).to_dict()
        assert data["trade_date"] == "2025-10-12"
        assert data["created_at"] == "2025-10-12T09:30:00+00:00"

    def test_snapshot_is_frozen(self):
        snapshot = TradeSnapshot.from_model(_trade())
        with pytest.raises(FrozenInstanceError):
            snapshot.status = "SETTLED"

    def test_snapshot_does_not_alias_source(self):
        source = _trade()
        snapshot = TradeSnapshot.from_model(source)
        source.status = TradeStatus.CONFIRMED
        assert snapshot.status == "PENDING"

    def test_changed_fields_ignores_bookkeeping(self):
        before = TradeSnapshot.from_model(_trade())
        after = replace(
            before, status="CONFIRMED", notes="ok", version=2, updated_by="bob"
        )
        assert before.changed_fields(after) == ("notes", "status")


class TestTradeAuditEntry:

    def test_from_model_parses_change_details(self):
        before = TradeSnapshot.from_model(_trade())
        after = replace(before, status="CONFIRMED", version=2)
        row = SimpleNamespace(
            id=5,
            trade_id=1,
            trade_reference="FX-20251012-0001",
            audit_timestamp=NOW,
            audit_user="bob",
            action=AuditAction.UPDATE,
            before_snapshot=before.to_json(),
            after_snapshot=after.to_json(),
            change_details='["status"]',
        )
        entry = TradeAuditEntry.from_model(row)
        assert entry.action == "UPDATE"
        assert entry.change_details == ("status",)
        assert entry.before_state()["status"] == "PENDING"
        assert entry.after_state()["status"] == "CONFIRMED"

    def test_create_entry_has_no_before_state(self):
        row = SimpleNamespace(
            id=1,
            trade_id=1,
            trade_reference="FX-20251012-0001",
            audit_timestamp=NOW,
            audit_user="alice",
            action=AuditAction.CREATE,
            before_snapshot=None,
            after_snapshot=TradeSnapshot.from_model(_trade()).to_json(),
            change_details=None,
        )
        entry = TradeAuditEntry.from_model(row)
        assert entry.before_state() is None
        assert entry.change_details == ()
