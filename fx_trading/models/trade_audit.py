"""
Module: fx_trading.models.trade_audit
Responsibility: ORM persistence for the append-only trade audit trail.
Architecture position: Models.  May import from db/ only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (ORM listener + DB trigger).
    - Exactly one row per successful create/update, written in the same
      transaction as the trade change (TradeService owns the boundary).
    - History order is (audit_timestamp, id) descending.

Audit relevance:
    This IS the audit trail.  before_snapshot/after_snapshot hold the full
    canonical JSON state of the trade around each mutation.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Enum as SAEnum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fx_trading.db.base import Base, SurrogateKey


class AuditAction(str, Enum):
    """Kinds of audited trade mutations."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"


class TradeAudit(Base):
    """
    Immutable audit entry for one trade mutation.

    Guarantees:
        - before_snapshot is None for CREATE.
        - after_snapshot is the full persisted state after the operation.
        - trade_reference is denormalized for query convenience.
    """

    __tablename__ = "trade_audit"

    __table_args__ = (
        Index("idx_trade_audit_trade", "trade_id", "audit_timestamp", "id"),
        Index("idx_trade_audit_timestamp", "audit_timestamp"),
    )

    id: Mapped[int] = mapped_column(
        SurrogateKey,
        primary_key=True,
        autoincrement=True,
    )

    trade_id: Mapped[int] = mapped_column(
        SurrogateKey,
        ForeignKey("trades.id"),
        nullable=False,
    )

    trade_reference: Mapped[str] = mapped_column(String(50), nullable=False)

    audit_timestamp: Mapped[datetime] = mapped_column(nullable=False)

    audit_user: Mapped[str] = mapped_column(String(50), nullable=False)

    action: Mapped[AuditAction] = mapped_column(
        SAEnum(AuditAction, native_enum=False, length=20, validate_strings=True),
        nullable=False,
    )

    # JSON list of changed field names (UPDATE only)
    change_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    before_snapshot: Mapped[str | None] = mapped_column(Text, nullable=True)

    after_snapshot: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<TradeAudit {self.action.value} {self.trade_reference} #{self.id}>"
