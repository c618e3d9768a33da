"""
TradeStore -- write-side persistence for Trade rows.

Responsibility:
    Inserts and saves trades inside the caller's transaction and translates
    SQLAlchemy failures into the typed errors callers act on.

Failure modes:
    - UniquenessViolationError: insert hit the trade_reference unique index.
      The allocator makes this impossible, so it is logged at CRITICAL and
      never retried.
    - ConcurrencyConflictError: the versioned UPDATE matched no row
      (StaleDataError) or the caller's expected_version is out of date.
    - TradeNotFoundError: unknown id.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from fx_trading.exceptions import (
    ConcurrencyConflictError,
    TradeNotFoundError,
    UniquenessViolationError,
)
from fx_trading.logging_config import get_logger
from fx_trading.models.trade import Trade
from fx_trading.services.base import BaseService

logger = get_logger("services.trade_store")


class TradeStore(BaseService[Trade]):
    """Session-bound trade persistence; flushes, never commits."""

    def add(self, trade: Trade) -> Trade:
        """Insert ``trade`` and flush so its id and version are assigned."""
        savepoint = self.session.begin_nested()
        try:
            self.session.add(trade)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            if "trade_reference" in str(exc.orig):
                logger.critical(
                    "duplicate_trade_reference",
                    extra={"trade_reference": trade.trade_reference},
                )
                raise UniquenessViolationError(trade.trade_reference) from exc
            raise
        return trade

    def get_for_update(self, trade_id: int) -> Trade:
        """Load ``trade_id`` under a row lock (PostgreSQL) with fresh state."""
        trade = self.session.execute(
            select(Trade)
            .where(Trade.id == trade_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if trade is None:
            raise TradeNotFoundError(trade_id)
        return trade

    def check_version(self, trade: Trade, expected_version: int | None) -> None:
        if expected_version is not None and trade.version != expected_version:
            raise ConcurrencyConflictError(
                trade.id, expected_version, trade.version
            )

    def save(self, trade: Trade) -> Trade:
        """Flush pending changes to ``trade`` through the versioned UPDATE."""
        version_read = trade.version
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise ConcurrencyConflictError(trade.id, version_read) from exc
        return trade
