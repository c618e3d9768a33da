"""
Module: fx_trading.models.trade
Responsibility: ORM persistence for FX spot trades.
Architecture position: Models.  May import from db/ only.

Invariants enforced:
    - trade_reference is UNIQUE and NOT NULL; frozen after insert
      (ORM listener + DB trigger).
    - value_date >= trade_date (CHECK constraint; validation rejects it first).
    - version is an optimistic-concurrency counter managed by SQLAlchemy
      (version_id_col): 1 on insert, +1 on every UPDATE, and every UPDATE is
      qualified by the version that was read.

Failure modes:
    - IntegrityError on a duplicate trade_reference (mapped to
      UniquenessViolationError by TradeStore).
    - StaleDataError when the versioned UPDATE matches no row (mapped to
      ConcurrencyConflictError by TradeStore).
    - ImmutabilityViolationError on deletes or frozen-column changes.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Enum as SAEnum, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fx_trading.db.base import SurrogateKey, TrackedBase
from fx_trading.db.types import Currency, Money, Rate


class TradeDirection(str, Enum):
    """Side of the deal from our perspective, in the base currency."""

    BUY = "BUY"
    SELL = "SELL"


class TradeStatus(str, Enum):
    """Lifecycle status of a trade.

    Forward-only: PENDING -> CONFIRMED -> SETTLED (see domain/lifecycle.py).
    """

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SETTLED = "SETTLED"


class Trade(TrackedBase):
    """
    One FX spot deal.

    Contract:
        Rows are created by TradeService.record_trade and mutated only by
        TradeService.update_trade (status, notes, counterparty).  Never
        deleted.

    Guarantees:
        - trade_reference uniquely and permanently identifies the trade.
        - Amounts are exact decimals: base/quote at scale 4, rate at scale 6.
    """

    __tablename__ = "trades"

    __table_args__ = (
        Index("idx_trades_trade_date", "trade_date"),
        Index("idx_trades_status", "status"),
        Index("idx_trades_trader", "trader"),
        CheckConstraint("value_date >= trade_date", name="ck_trades_value_date"),
    )

    id: Mapped[int] = mapped_column(
        SurrogateKey,
        primary_key=True,
        autoincrement=True,
    )

    # FX-YYYYMMDD-NNNN
    trade_reference: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    trade_date: Mapped[date] = mapped_column(nullable=False)

    value_date: Mapped[date] = mapped_column(nullable=False)

    direction: Mapped[TradeDirection] = mapped_column(
        SAEnum(TradeDirection, native_enum=False, length=4, validate_strings=True),
        nullable=False,
    )

    base_currency: Mapped[Currency] = mapped_column(nullable=False)

    quote_currency: Mapped[Currency] = mapped_column(nullable=False)

    base_amount: Mapped[Money] = mapped_column(nullable=False)

    exchange_rate: Mapped[Rate] = mapped_column(nullable=False)

    quote_amount: Mapped[Money] = mapped_column(nullable=False)

    counterparty: Mapped[str | None] = mapped_column(String(100), nullable=True)

    trader: Mapped[str | None] = mapped_column(String(50), nullable=True)

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[TradeStatus] = mapped_column(
        SAEnum(TradeStatus, native_enum=False, length=20, validate_strings=True),
        default=TradeStatus.PENDING,
        nullable=False,
    )

    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Trade {self.trade_reference} {self.status.value} v{self.version}>"

    @property
    def currency_pair(self) -> str:
        return f"{self.base_currency}/{self.quote_currency}"
