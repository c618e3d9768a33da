"""
Module: fx_trading.models.trade_sequence
Responsibility: Per-calendar-date counter rows backing trade references.
Architecture position: Models.  May import from db/ only.

Invariants enforced:
    - One row per date (trade_date is the primary key).
    - next_sequence is the next value to hand out; it only ever grows, and
      only SequenceService changes it, under a row/write lock.
    - The aggregate-max-plus-one pattern is never used: this row is the sole
      source of truth for the next reference number.
"""

from datetime import date, datetime

from sqlalchemy import Date, Integer
from sqlalchemy.orm import Mapped, mapped_column

from fx_trading.db.base import Base


class TradeSequence(Base):
    """Counter row for one booking date."""

    __tablename__ = "trade_sequence"

    trade_date: Mapped[date] = mapped_column(Date, primary_key=True)

    next_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    last_updated: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<TradeSequence {self.trade_date} next={self.next_sequence}>"
