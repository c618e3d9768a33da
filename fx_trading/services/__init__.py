"""Write-side services. TradeService is the public entry point."""

from fx_trading.services.audit_recorder import AuditRecorder
from fx_trading.services.sequence_service import SequenceService
from fx_trading.services.trade_service import TradeService
from fx_trading.services.trade_store import TradeStore

__all__ = ["AuditRecorder", "SequenceService", "TradeService", "TradeStore"]
