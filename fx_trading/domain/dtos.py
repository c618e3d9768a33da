"""
Domain DTOs -- inputs to and outputs from the trade service.

Inputs (``TradeRequest``, ``TradeUpdate``, ``TradeFilter``) carry raw
caller values; validation turns a request into a typed ``ValidatedTrade``.
Outputs (``TradeSnapshot``, ``TradeAuditEntry``) are frozen copies of
persisted state, detached from any session, so a snapshot taken before a
mutation can never alias the state after it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

_CAMEL_ALIASES = {
    "tradeDate": "trade_date",
    "valueDate": "value_date",
    "baseCurrency": "base_currency",
    "quoteCurrency": "quote_currency",
    "baseAmount": "base_amount",
    "exchangeRate": "exchange_rate",
    "quoteAmount": "quote_amount",
}


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {_CAMEL_ALIASES.get(key, key): value for key, value in data.items()}


@dataclass(frozen=True)
class TradeRequest:
    """Raw trade input as supplied by a caller; every field may be missing."""

    trade_date: date | str | None = None
    value_date: date | str | None = None
    direction: Any = None
    base_currency: str | None = None
    quote_currency: str | None = None
    base_amount: Any = None
    exchange_rate: Any = None
    quote_amount: Any = None
    counterparty: str | None = None
    trader: str | None = None
    notes: str | None = None
    status: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TradeRequest:
        """Build from a dict, accepting snake_case or camelCase keys.

        Unknown keys (id, tradeReference, createdBy, ...) are ignored: those
        values are always assigned by the service.
        """
        known = {f.name for f in fields(cls)}
        normalized = _normalize_keys(data)
        return cls(**{k: v for k, v in normalized.items() if k in known})


@dataclass(frozen=True)
class TradeUpdate:
    """Partial update; None means "leave unchanged"."""

    status: Any = None
    notes: str | None = None
    counterparty: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TradeUpdate:
        return cls(
            status=data.get("status"),
            notes=data.get("notes"),
            counterparty=data.get("counterparty"),
        )

    def supplied_fields(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("status", self.status),
                ("notes", self.notes),
                ("counterparty", self.counterparty),
            )
            if value is not None
        }


@dataclass(frozen=True)
class TradeFilter:
    """Optional filters for TradeService.list_trades; bounds are inclusive."""

    start_date: date | None = None
    end_date: date | None = None
    status: Any = None


@dataclass(frozen=True)
class ValidatedTrade:
    """A request that passed every rule, with typed and normalized values."""

    trade_date: date
    value_date: date
    direction: Any
    base_currency: str
    quote_currency: str
    base_amount: Decimal
    exchange_rate: Decimal
    quote_amount: Decimal | None
    counterparty: str | None
    trader: str | None
    notes: str | None
    status: Any


def _to_json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def canonical_json(data: Mapping[str, Any]) -> str:
    """Deterministic JSON: sorted keys, compact separators."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class TradeSnapshot:
    """
    Immutable copy of a trade's full persisted state.

    Decimals keep their declared scale; ``to_json()`` renders them as plain
    strings ("1085000.0000"), never as floats.
    """

    id: int
    trade_reference: str
    trade_date: date
    value_date: date
    direction: str
    base_currency: str
    quote_currency: str
    base_amount: Decimal
    exchange_rate: Decimal
    quote_amount: Decimal
    counterparty: str | None
    trader: str | None
    notes: str | None
    status: str
    version: int
    created_by: str
    created_at: datetime
    updated_by: str
    updated_at: datetime

    @classmethod
    def from_model(cls, trade: Any) -> TradeSnapshot:
        """Copy every column of a Trade ORM instance."""
        return cls(
            id=trade.id,
            trade_reference=trade.trade_reference,
            trade_date=trade.trade_date,
            value_date=trade.value_date,
            direction=_to_json_value(trade.direction),
            base_currency=trade.base_currency,
            quote_currency=trade.quote_currency,
            base_amount=trade.base_amount,
            exchange_rate=trade.exchange_rate,
            quote_amount=trade.quote_amount,
            counterparty=trade.counterparty,
            trader=trade.trader,
            notes=trade.notes,
            status=_to_json_value(trade.status),
            version=trade.version,
            created_by=trade.created_by,
            created_at=trade.created_at,
            updated_by=trade.updated_by,
            updated_at=trade.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _to_json_value(getattr(self, f.name)) for f in fields(self)}

    def to_json(self) -> str:
        return canonical_json(self.to_dict())

    def changed_fields(self, other: TradeSnapshot) -> tuple[str, ...]:
        """Business fields that differ between self and ``other``.

        Bookkeeping columns (version, updated_*) are excluded.
        """
        ignored = {"version", "updated_at", "updated_by"}
        return tuple(
            f.name
            for f in fields(self)
            if f.name not in ignored and getattr(self, f.name) != getattr(other, f.name)
        )


@dataclass(frozen=True)
class TradeAuditEntry:
    """Immutable copy of one trade_audit row."""

    id: int
    trade_id: int
    trade_reference: str
    audit_timestamp: datetime
    audit_user: str
    action: str
    before_snapshot: str | None
    after_snapshot: str
    change_details: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, audit: Any) -> TradeAuditEntry:
        return cls(
            id=audit.id,
            trade_id=audit.trade_id,
            trade_reference=audit.trade_reference,
            audit_timestamp=audit.audit_timestamp,
            audit_user=audit.audit_user,
            action=_to_json_value(audit.action),
            before_snapshot=audit.before_snapshot,
            after_snapshot=audit.after_snapshot,
            change_details=tuple(json.loads(audit.change_details))
            if audit.change_details
            else (),
        )

    def before_state(self) -> dict[str, Any] | None:
        return json.loads(self.before_snapshot) if self.before_snapshot else None

    def after_state(self) -> dict[str, Any]:
        return json.loads(self.after_snapshot)
