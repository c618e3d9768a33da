"""
Module: fx_trading.selectors.trade_selector
Responsibility: Read queries over trades and the trade audit trail.
Architecture position: Selectors.  Used by TradeService read methods on a
    reader session.

Invariants enforced:
    - Reads have no side effects: no audit entries, no counter changes.
    - Deterministic ordering on every list query (ties broken by id).
    - Audit history order is (audit_timestamp, id) descending.

Failure modes:
    - TradeNotFoundError from get_trade / get_by_reference.
"""

from datetime import date, datetime

from sqlalchemy import func, select

from fx_trading.domain.dtos import TradeAuditEntry, TradeFilter, TradeSnapshot
from fx_trading.exceptions import TradeNotFoundError
from fx_trading.models.trade import Trade, TradeStatus
from fx_trading.models.trade_audit import TradeAudit
from fx_trading.selectors.base import BaseSelector


def _snapshots(rows) -> tuple[TradeSnapshot, ...]:
    return tuple(TradeSnapshot.from_model(row) for row in rows)


class TradeSelector(BaseSelector[Trade]):
    """Read-only trade and audit queries returning frozen DTOs."""

    def get_trade(self, trade_id: int) -> TradeSnapshot:
        trade = self.session.get(Trade, trade_id)
        if trade is None:
            raise TradeNotFoundError(trade_id)
        return TradeSnapshot.from_model(trade)

    def get_by_reference(self, trade_reference: str) -> TradeSnapshot:
        trade = self.session.execute(
            select(Trade).where(Trade.trade_reference == trade_reference)
        ).scalar_one_or_none()
        if trade is None:
            raise TradeNotFoundError(trade_reference)
        return TradeSnapshot.from_model(trade)

    def by_date_range(self, start: date, end: date) -> tuple[TradeSnapshot, ...]:
        """Trades with start <= trade_date <= end, oldest first."""
        return _snapshots(
            self.session.execute(
                select(Trade)
                .where(Trade.trade_date >= start, Trade.trade_date <= end)
                .order_by(Trade.trade_date, Trade.id)
            ).scalars()
        )

    def by_status(self, status: TradeStatus) -> tuple[TradeSnapshot, ...]:
        return _snapshots(
            self.session.execute(
                select(Trade).where(Trade.status == status).order_by(Trade.id)
            ).scalars()
        )

    def by_trader(self, trader: str) -> tuple[TradeSnapshot, ...]:
        return _snapshots(
            self.session.execute(
                select(Trade).where(Trade.trader == trader).order_by(Trade.id)
            ).scalars()
        )

    def recent_since(self, from_date: date) -> tuple[TradeSnapshot, ...]:
        """Trades dated on or after ``from_date``, most recent first."""
        return _snapshots(
            self.session.execute(
                select(Trade)
                .where(Trade.trade_date >= from_date)
                .order_by(Trade.trade_date.desc(), Trade.id.desc())
            ).scalars()
        )

    def all_trades(self) -> tuple[TradeSnapshot, ...]:
        """Every trade, most recent trade date first."""
        return _snapshots(
            self.session.execute(
                select(Trade).order_by(Trade.trade_date.desc(), Trade.id.desc())
            ).scalars()
        )

    def filtered(
        self,
        trade_filter: TradeFilter,
        status: TradeStatus | None = None,
    ) -> tuple[TradeSnapshot, ...]:
        """Apply an optional inclusive date range and status."""
        stmt = select(Trade)
        if trade_filter.start_date is not None:
            stmt = stmt.where(Trade.trade_date >= trade_filter.start_date)
        if trade_filter.end_date is not None:
            stmt = stmt.where(Trade.trade_date <= trade_filter.end_date)
        if status is not None:
            stmt = stmt.where(Trade.status == status)
        return _snapshots(
            self.session.execute(
                stmt.order_by(Trade.trade_date.desc(), Trade.id.desc())
            ).scalars()
        )

    def count_on(self, trade_date: date) -> int:
        return self.session.execute(
            select(func.count(Trade.id)).where(Trade.trade_date == trade_date)
        ).scalar_one()

    def audit_history(self, trade_id: int) -> tuple[TradeAuditEntry, ...]:
        rows = self.session.execute(
            select(TradeAudit)
            .where(TradeAudit.trade_id == trade_id)
            .order_by(TradeAudit.audit_timestamp.desc(), TradeAudit.id.desc())
        ).scalars()
        return tuple(TradeAuditEntry.from_model(row) for row in rows)

    def audit_between(
        self, start: datetime, end: datetime
    ) -> tuple[TradeAuditEntry, ...]:
        """Audit entries with start <= audit_timestamp <= end, newest first."""
        rows = self.session.execute(
            select(TradeAudit)
            .where(
                TradeAudit.audit_timestamp >= start,
                TradeAudit.audit_timestamp <= end,
            )
            .order_by(TradeAudit.audit_timestamp.desc(), TradeAudit.id.desc())
        ).scalars()
        return tuple(TradeAuditEntry.from_model(row) for row in rows)
