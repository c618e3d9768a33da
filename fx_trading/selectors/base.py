"""
Module: fx_trading.selectors.base
Responsibility: Abstract base class for read-only query selectors.  Selectors
    are the "Q" side of the service: structured reads of trades and audit
    entries without any mutation capability.
Architecture position: Selectors.  May import from db/, models/ and
    domain/dtos.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never call session.add(), delete(),
      flush() or commit().
    - DTO return convention: selectors return frozen dataclasses
      (TradeSnapshot, TradeAuditEntry), never ORM instances, so callers can
      not mutate persisted state through a query result.
    - Session ownership: the caller owns the session (normally a reader
      session from read_scope()).
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from fx_trading.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.
    """

    def __init__(self, session: Session):
        self.session = session
