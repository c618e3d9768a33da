"""
AuditRecorder -- append-only trade audit trail.

Responsibility:
    Writes one ``trade_audit`` row per successful trade mutation, holding the
    full canonical JSON state before and after the change.

Architecture position:
    Services -- called by TradeService.record_trade / update_trade inside the
    same write transaction as the trade change.

Invariants enforced:
    - Atomicity: the audit row is flushed in the caller's transaction, so a
      trade change never commits without its entry and vice versa.
    - Fidelity: snapshots are taken from the persisted row after flush, so
      after_snapshot includes the assigned id, reference and new version.
    - Append-only: TradeAudit rows are protected by ORM listeners and
      database triggers.

Audit relevance:
    This IS the audit writer.  Entries are logged at INFO as
    ``audit_recorded``.
"""

import json

from fx_trading.domain.clock import Clock, SystemClock
from fx_trading.domain.dtos import TradeAuditEntry, TradeSnapshot
from fx_trading.logging_config import get_logger
from fx_trading.models.trade_audit import AuditAction, TradeAudit
from fx_trading.services.base import BaseService

logger = get_logger("services.audit")


class AuditRecorder(BaseService[TradeAudit]):
    """
    Contract:
        ``record_create`` / ``record_update`` add and flush exactly one
        TradeAudit row and return it as a detached TradeAuditEntry.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT read history; see TradeSelector.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _append(
        self,
        action: AuditAction,
        before: TradeSnapshot | None,
        after: TradeSnapshot,
        audit_user: str,
        change_details: tuple[str, ...] | None,
    ) -> TradeAuditEntry:
        audit = TradeAudit(
            trade_id=after.id,
            trade_reference=after.trade_reference,
            audit_timestamp=self._clock.now(),
            audit_user=audit_user,
            action=action,
            change_details=(
                json.dumps(list(change_details)) if change_details is not None else None
            ),
            before_snapshot=before.to_json() if before is not None else None,
            after_snapshot=after.to_json(),
        )
        self.session.add(audit)
        self.session.flush()

        logger.info(
            "audit_recorded",
            extra={
                "audit_id": audit.id,
                "action": action.value,
                "trade_id": after.id,
                "trade_reference": after.trade_reference,
                "audit_user": audit_user,
            },
        )
        return TradeAuditEntry.from_model(audit)

    def record_create(self, after: TradeSnapshot, audit_user: str) -> TradeAuditEntry:
        return self._append(AuditAction.CREATE, None, after, audit_user, None)

    def record_update(
        self,
        before: TradeSnapshot,
        after: TradeSnapshot,
        audit_user: str,
    ) -> TradeAuditEntry:
        return self._append(
            AuditAction.UPDATE,
            before,
            after,
            audit_user,
            before.changed_fields(after),
        )
