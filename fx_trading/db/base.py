"""
Module: fx_trading.db.base
Responsibility: Declarative base classes and portable column types for all
    SQLAlchemy ORM models.  Provides the integer surrogate key convention,
    exact-decimal and UTC timestamp types, and the TrackedBase mixin for
    provenance columns.
Architecture position: DB layer.  This is the lowest-level import target;
    ALL model files import from here.  MUST NOT import from models/,
    services/, selectors/ or domain/.

Invariants enforced:
    - Exact decimals: ExactDecimal never round-trips through float.  SQLite
      has no native decimal storage, so values are stored as canonical
      strings there; PostgreSQL uses NUMERIC(precision, scale).  Reads always
      come back quantized to the declared scale.
    - UTC timestamps: UTCDateTime stores naive UTC and returns aware UTC on
      every backend, so snapshots read back identically.
    - Surrogate keys autoincrement on both SQLite (INTEGER PRIMARY KEY) and
      PostgreSQL (BIGINT identity).

Failure modes:
    - ValueError from ExactDecimal.process_bind_param if a value carries
      more fractional digits than the column scale allows (callers quantize
      before binding; see db/types.round_money).

Audit relevance:
    TrackedBase.created_at/created_by/updated_at/updated_by record who
    touched a trade and when.  created_* is frozen after insert
    (see db/immutability.py).
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import ClassVar

from sqlalchemy import BigInteger, Date, DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# Autoincrementing surrogate key that works on SQLite and PostgreSQL
SurrogateKey = BigInteger().with_variant(Integer(), "sqlite")


class ExactDecimal(TypeDecorator):
    """
    Fixed-scale decimal stored without loss on every backend.

    Contract:
        Binds Decimal values quantized to ``scale``; loads them back as
        Decimal with exactly ``scale`` fractional digits.

    Guarantees:
        - SQLite: stored as TEXT (e.g. "1234567.8901"), never REAL.
        - PostgreSQL: stored as NUMERIC(precision, scale).
        - Values with more fractional digits than ``scale`` are rejected,
          never silently rounded at the storage boundary.
    """

    impl = String(40)
    cache_ok = True

    def __init__(self, precision: int, scale: int):
        super().__init__()
        self.precision = precision
        self.scale = scale
        self._quantum = Decimal(1).scaleb(-scale)

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.precision + 2))
        return dialect.type_descriptor(
            Numeric(self.precision, self.scale, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        """Quantize to scale; refuse values that would lose digits."""
        if value is None:
            return None
        value = Decimal(value)
        quantized = value.quantize(self._quantum)
        if quantized != value:
            raise ValueError(
                f"{value} has more than {self.scale} fractional digits"
            )
        if dialect.name == "sqlite":
            return format(quantized, "f")
        return quantized

    def process_result_value(self, value, dialect):
        """Load as Decimal at the declared scale."""
        if value is None:
            return None
        try:
            return Decimal(str(value)).quantize(self._quantum)
        except InvalidOperation as exc:
            raise ValueError(f"Stored decimal is corrupt: {value!r}") from exc


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetime on every backend.

    SQLite drops tzinfo on storage; this type normalizes to UTC on the way
    in and reattaches UTC on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetime rejected; timestamps must be UTC-aware")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model inherits from Base (or TrackedBase).  Models declare
        their own primary key because the sequence table is keyed by date.

    Guarantees:
        - datetime maps to UTCDateTime -- always timezone-aware UTC.
        - date maps to Date.
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        date: Date(),
        int: BigInteger,
    }


class TrackedBase(Base):
    """
    Abstract base with provenance columns.

    Contract:
        Every tracked row records who created and last modified it, and
        when.  Values come from the acting user and the injected Clock,
        never from ambient context or the database server clock.

    Guarantees:
        - created_at/created_by are NOT NULL and frozen after insert.
        - updated_at/updated_by are NOT NULL and change on every mutation.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    created_by: Mapped[str] = mapped_column(String(50), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    updated_by: Mapped[str] = mapped_column(String(50), nullable=False)
