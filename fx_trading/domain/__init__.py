"""
Domain layer.

Pure values and rules: clock, reference format, DTOs, validation and the
status lifecycle.  Nothing here opens a session or performs I/O.
"""

from fx_trading.domain.clock import Clock, DeterministicClock, SystemClock
from fx_trading.domain.dtos import (
    TradeAuditEntry,
    TradeFilter,
    TradeRequest,
    TradeSnapshot,
    TradeUpdate,
    ValidatedTrade,
    canonical_json,
)
from fx_trading.domain.lifecycle import VALID_TRANSITIONS, check_transition
from fx_trading.domain.reference import format_trade_reference, parse_trade_reference
from fx_trading.domain.validation import validate_trade_request, validate_trade_update

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "TradeAuditEntry",
    "TradeFilter",
    "TradeRequest",
    "TradeSnapshot",
    "TradeUpdate",
    "ValidatedTrade",
    "canonical_json",
    "VALID_TRANSITIONS",
    "check_transition",
    "format_trade_reference",
    "parse_trade_reference",
    "validate_trade_request",
    "validate_trade_update",
]
