"""ORM models. Importing this package registers every table on Base.metadata."""

from fx_trading.models.trade import Trade, TradeDirection, TradeStatus
from fx_trading.models.trade_audit import AuditAction, TradeAudit
from fx_trading.models.trade_sequence import TradeSequence

__all__ = [
    "Trade",
    "TradeDirection",
    "TradeStatus",
    "TradeAudit",
    "AuditAction",
    "TradeSequence",
]
