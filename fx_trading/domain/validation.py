"""
Trade input validation -- composable pure rules.

Responsibility:
    Turns a raw ``TradeRequest`` into a ``ValidatedTrade`` or a complete list
    of ``Violation`` descriptors.  Nothing here touches the database or the
    clock; "today" and the limits are passed in.

Structure:
    1. Field parsers coerce raw values (strings, enums, decimals, dates) and
       report missing or malformed fields.
    2. Rules are plain functions ``rule(fields, settings, today)`` returning
       a ``Violation`` or ``None``.  A rule whose inputs failed to parse is
       skipped, so every field is reported at most once per cause.
    3. ``validate_trade_request`` runs the parsers and every rule in
       ``TRADE_RULES`` and collects all violations.

Adding a rule means appending a function to ``TRADE_RULES``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable

from fx_config.schema import ValidationSettings
from fx_trading.db.types import (
    MAX_MONEY_VALUE,
    MONEY_DECIMAL_PLACES,
    RATE_DECIMAL_PLACES,
    fractional_digits,
    to_decimal,
)
from fx_trading.domain.dtos import TradeRequest, TradeUpdate, ValidatedTrade
from fx_trading.exceptions import TradeValidationError, Violation
from fx_trading.models.trade import TradeDirection, TradeStatus

Fields = dict[str, Any]
Rule = Callable[[Fields, ValidationSettings, date], "Violation | None"]

# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise ValueError(f"not a date: {value!r}")


def _parse_enum(enum_cls, value: Any):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        return enum_cls(value.strip().upper())
    raise ValueError(f"not a {enum_cls.__name__}: {value!r}")


def _parse_currency(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"not a currency code: {value!r}")
    return value.strip().upper()


def _clean_text(value: str) -> str | None:
    """Strip surrounding whitespace; blank text means no value."""
    return value.strip() or None


_REQUIRED = (
    ("trade_date", _parse_date, "Trade date is required"),
    ("value_date", _parse_date, "Value date is required"),
    ("direction", lambda v: _parse_enum(TradeDirection, v), "Direction is required"),
    ("base_currency", _parse_currency, "Base currency is required"),
    ("quote_currency", _parse_currency, "Quote currency is required"),
    ("base_amount", to_decimal, "Base amount is required"),
    ("exchange_rate", to_decimal, "Exchange rate is required"),
)

_OPTIONAL = (
    ("quote_amount", to_decimal),
    ("status", lambda v: _parse_enum(TradeStatus, v)),
)


def parse_request(request: TradeRequest) -> tuple[Fields, list[Violation]]:
    """Coerce raw request values.  Unparseable fields are left out of the result."""
    parsed: Fields = {}
    violations: list[Violation] = []

    for name, parser, missing_message in _REQUIRED:
        raw = getattr(request, name)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            violations.append(Violation(name, "required", missing_message))
            continue
        try:
            parsed[name] = parser(raw)
        except ValueError:
            violations.append(
                Violation(name, "invalid_format", f"Invalid value for {name}: {raw!r}")
            )

    for name, parser in _OPTIONAL:
        raw = getattr(request, name)
        if raw is None:
            parsed[name] = None
            continue
        try:
            parsed[name] = parser(raw)
        except ValueError:
            violations.append(
                Violation(name, "invalid_format", f"Invalid value for {name}: {raw!r}")
            )

    for name in ("counterparty", "trader", "notes"):
        raw = getattr(request, name)
        if raw is not None and not isinstance(raw, str):
            violations.append(Violation(name, "invalid_format", f"{name} must be text"))
            continue
        parsed[name] = _clean_text(raw) if raw is not None else None

    return parsed, violations


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def _amount_rules(
    name: str,
    label: str,
    low: Callable[[ValidationSettings], Decimal] | None,
    high: Callable[[ValidationSettings], Decimal],
    scale: int | None,
) -> list[Rule]:
    def positive(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
        value = f.get(name)
        if value is not None and value <= 0:
            return Violation(name, "positive", f"{label} must be positive")
        return None

    def minimum(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
        value = f.get(name)
        if value is not None and 0 < value < low(s):
            return Violation(name, "minimum", f"{label} must be at least {low(s)}")
        return None

    def maximum(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
        value = f.get(name)
        if value is not None and value > high(s):
            return Violation(name, "maximum", f"{label} cannot exceed {high(s)}")
        return None

    def precision(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
        value = f.get(name)
        if value is not None and fractional_digits(value) > scale:
            return Violation(
                name, "precision", f"{label} allows at most {scale} decimal places"
            )
        return None

    rules: list[Rule] = [positive]
    if low is not None:
        rules.append(minimum)
    rules.append(maximum)
    if scale is not None:
        rules.append(precision)
    return rules


def _currency_rule(name: str, label: str) -> Rule:
    def allowed(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
        code = f.get(name)
        if code is not None and code not in s.allowed_currencies:
            return Violation(
                name,
                "allowed_currency",
                f"Invalid {label} '{code}'. Must be one of: "
                f"{', '.join(sorted(s.allowed_currencies))}",
            )
        return None

    return allowed


def trade_date_not_in_future(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
    trade_date = f.get("trade_date")
    if trade_date is not None and trade_date > today + timedelta(days=s.max_future_days):
        return Violation(
            "trade_date",
            "max_future_days",
            f"Trade date cannot be more than {s.max_future_days} days in the future",
        )
    return None


def trade_date_not_too_old(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
    trade_date = f.get("trade_date")
    if trade_date is not None and trade_date < today - timedelta(days=s.max_past_days):
        return Violation(
            "trade_date",
            "max_past_days",
            f"Trade date cannot be more than {s.max_past_days} days in the past",
        )
    return None


def value_date_not_before_trade_date(
    f: Fields, s: ValidationSettings, today: date
) -> Violation | None:
    trade_date, value_date = f.get("trade_date"), f.get("value_date")
    if trade_date is not None and value_date is not None and value_date < trade_date:
        return Violation(
            "value_date", "value_after_trade", "Value date must be on or after trade date"
        )
    return None


def value_date_within_offset(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
    trade_date, value_date = f.get("trade_date"), f.get("value_date")
    if (
        trade_date is not None
        and value_date is not None
        and (value_date - trade_date).days > s.max_value_date_offset
    ):
        return Violation(
            "value_date",
            "max_value_date_offset",
            f"Value date cannot be more than {s.max_value_date_offset} "
            "days after trade date",
        )
    return None


def _length_rule(name: str, limit: Callable[[ValidationSettings], int]) -> Rule:
    def bounded(f: Fields, s: ValidationSettings, today: date) -> Violation | None:
        text = f.get(name)
        if text is not None and len(text) > limit(s):
            return Violation(
                name, "max_length", f"{name} cannot exceed {limit(s)} characters"
            )
        return None

    return bounded


TRADE_RULES: tuple[Rule, ...] = (
    *_amount_rules(
        "base_amount",
        "Base amount",
        lambda s: s.min_trade_amount,
        lambda s: s.max_trade_amount,
        MONEY_DECIMAL_PLACES,
    ),
    *_amount_rules(
        "exchange_rate",
        "Exchange rate",
        lambda s: s.min_exchange_rate,
        lambda s: s.max_exchange_rate,
        RATE_DECIMAL_PLACES,
    ),
    # A supplied quote amount is rounded to scale 4 rather than rejected;
    # it only has to be positive and fit the column.
    *_amount_rules(
        "quote_amount",
        "Quote amount",
        None,
        lambda s: MAX_MONEY_VALUE,
        None,
    ),
    _currency_rule("base_currency", "base currency"),
    _currency_rule("quote_currency", "quote currency"),
    trade_date_not_in_future,
    trade_date_not_too_old,
    value_date_not_before_trade_date,
    value_date_within_offset,
    _length_rule("counterparty", lambda s: s.max_counterparty_length),
    _length_rule("trader", lambda s: s.max_trader_length),
    _length_rule("notes", lambda s: s.max_notes_length),
)


def check_rules(
    fields: Fields,
    settings: ValidationSettings,
    today: date,
    rules: tuple[Rule, ...] = TRADE_RULES,
) -> list[Violation]:
    """Run ``rules`` over already-parsed fields and collect violations."""
    return [v for v in (rule(fields, settings, today) for rule in rules) if v is not None]


def validate_trade_request(
    request: TradeRequest,
    settings: ValidationSettings,
    today: date,
) -> ValidatedTrade:
    """
    Validate a new trade.

    Raises:
        TradeValidationError: listing every violated rule.
    """
    fields, violations = parse_request(request)
    violations.extend(check_rules(fields, settings, today))
    if violations:
        raise TradeValidationError(violations)
    return ValidatedTrade(**fields)


UPDATE_RULES: tuple[Rule, ...] = (
    _length_rule("counterparty", lambda s: s.max_counterparty_length),
    _length_rule("notes", lambda s: s.max_notes_length),
)


def validate_trade_update(
    update: TradeUpdate,
    settings: ValidationSettings,
) -> Fields:
    """
    Validate a partial update and return only the supplied, parsed fields.

    Raises:
        TradeValidationError: if no field is supplied or a field is invalid.

    Text is stripped as on create, so blank notes or counterparty clear
    the stored value.
    """
    supplied = update.supplied_fields()
    if not supplied:
        raise TradeValidationError((
            Violation(
                "update",
                "empty_update",
                "Update must supply at least one of status, notes, counterparty",
            ),
        ))

    fields: Fields = {}
    violations: list[Violation] = []
    for name, raw in supplied.items():
        if name == "status":
            try:
                fields[name] = _parse_enum(TradeStatus, raw)
            except ValueError:
                violations.append(
                    Violation(name, "invalid_format", f"Invalid value for status: {raw!r}")
                )
        elif not isinstance(raw, str):
            violations.append(Violation(name, "invalid_format", f"{name} must be text"))
        else:
            fields[name] = _clean_text(raw)

    # "today" is irrelevant to update rules
    violations.extend(check_rules(fields, settings, date.min, UPDATE_RULES))
    if violations:
        raise TradeValidationError(violations)
    return fields
