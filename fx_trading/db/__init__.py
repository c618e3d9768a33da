"""Database layer - engines, base classes, types, immutability."""

from fx_trading.db.base import Base, ExactDecimal, TrackedBase, UTCDateTime
from fx_trading.db.engine import (
    create_tables,
    get_engine,
    get_read_session_factory,
    get_session_factory,
    init_engine_from_url,
    read_scope,
    session_scope,
)
from fx_trading.db.types import Currency, Money, Rate

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session_factory",
    "get_read_session_factory",
    "session_scope",
    "read_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "ExactDecimal",
    "UTCDateTime",
    "Money",
    "Rate",
    "Currency",
]
