"""
BaseService -- abstract base for session-bound write services.

Responsibility:
    Common constructor and flush-only contract for the services that run
    inside TradeService's write transaction (TradeStore, AuditRecorder).

Invariants enforced:
    Services flush within the caller's transaction and never commit or
    roll back.  TradeService owns the boundary, so the trade row, the
    sequence counter and the audit entry commit or vanish together.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from fx_trading.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Contract:
        Accepts a ``Session`` from the caller and persists changes with
        ``session.flush()``.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Read-only queries belong in ``fx_trading/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
