"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The trade audit trail is only worth something if nobody can rewrite it, and a
trade reference is only a reference if it never changes.  This module is the
first layer of enforcement:

  Layer 1: THIS FILE (ORM mapper event listeners)
    - Catches modifications made through SQLAlchemy
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (SQLite / PostgreSQL triggers)
    - Catches raw SQL and bulk statements
    - Fires AT the database level, independent of application code

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity       | When Immutable            | What
-------------|---------------------------|-----------------------------------
TradeAudit   | ALWAYS (from creation)    | No UPDATE, no DELETE
Trade        | ALWAYS (from creation)    | No DELETE; frozen economics columns
TradeSequence| never                     | Counter rows are mutable by design

Mutable trade columns: status, notes, counterparty, updated_at, updated_by,
version.

===============================================================================
USAGE
===============================================================================

    from fx_trading.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from fx_trading.db.triggers import FROZEN_TRADE_COLUMNS
from fx_trading.exceptions import ImmutabilityViolationError
from fx_trading.logging_config import get_logger

logger = get_logger("db.immutability")

_registered = False


def _reject_audit_update(mapper, connection, target):
    logger.error(
        "immutability_violation",
        extra={"entity_type": "TradeAudit", "entity_id": target.id, "op": "update"},
    )
    raise ImmutabilityViolationError(
        "TradeAudit", target.id, "audit entries are append-only"
    )


def _reject_audit_delete(mapper, connection, target):
    logger.error(
        "immutability_violation",
        extra={"entity_type": "TradeAudit", "entity_id": target.id, "op": "delete"},
    )
    raise ImmutabilityViolationError(
        "TradeAudit", target.id, "audit entries cannot be deleted"
    )


def _check_trade_frozen_columns(mapper, connection, target):
    """Reject any change to a frozen trade column.

    Uses attribute history: a frozen attribute whose loaded value was
    replaced by a different value is a violation.
    """
    state = inspect(target)
    for name in FROZEN_TRADE_COLUMNS:
        history = state.attrs[name].history
        if not history.has_changes() or not history.deleted:
            continue
        old, new = history.deleted[0], history.added[0] if history.added else None
        if old != new:
            logger.error(
                "immutability_violation",
                extra={
                    "entity_type": "Trade",
                    "entity_id": target.id,
                    "field": name,
                },
            )
            raise ImmutabilityViolationError(
                "Trade", target.id, f"{name} cannot change after creation"
            )


def _reject_trade_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        "Trade", target.id, "trades cannot be deleted; references are never reused"
    )


def _listeners():
    from fx_trading.models.trade import Trade
    from fx_trading.models.trade_audit import TradeAudit

    return [
        (TradeAudit, "before_update", _reject_audit_update),
        (TradeAudit, "before_delete", _reject_audit_delete),
        (Trade, "before_update", _check_trade_frozen_columns),
        (Trade, "before_delete", _reject_trade_delete),
    ]


def register_immutability_listeners() -> None:
    """Register all ORM immutability listeners (idempotent)."""
    global _registered
    if _registered:
        return
    for target, identifier, fn in _listeners():
        if not event.contains(target, identifier, fn):
            event.listen(target, identifier, fn)
    _registered = True
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove all ORM immutability listeners. FOR TESTING ONLY."""
    global _registered
    for target, identifier, fn in _listeners():
        if event.contains(target, identifier, fn):
            event.remove(target, identifier, fn)
    _registered = False
