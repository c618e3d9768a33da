"""
TradeService -- the FX spot trade recorder's public API.

Responsibility:
    Records new trades, applies status/notes/counterparty updates and serves
    read queries.  Owns the write transaction: validation, reference
    allocation, the trade row and its audit entry form one unit of work.

Architecture position:
    Services -- outermost layer of the package.  Composes SequenceService,
    TradeStore and AuditRecorder on a writer session, and TradeSelector on a
    reader session.

Invariants enforced:
    - Unique references: every committed trade carries a distinct
      FX-YYYYMMDD-NNNN issued by SequenceService under the write lock.
    - Audit completeness: every successful create/update commits exactly one
      audit entry; a failure anywhere rolls back the trade, the counter and
      the entry together.
    - Exact arithmetic: quote_amount = round_half_up(base x rate, 4) in
      Decimal, never float.
    - Optimistic concurrency: updates are version-checked; a lost race is a
      ConcurrencyConflictError, never a silent overwrite.
    - Reads are pure: no audit entries, no counter changes.

Failure modes:
    - TradeValidationError / InvalidStatusTransitionError: bad input.
    - TradeNotFoundError: unknown id or reference.
    - ConcurrencyConflictError: version mismatch on update.
    - StorageBusyError: write lock not acquired within the configured bound.
    - UniquenessViolationError: allocator integrity fault (never retried).

Audit relevance:
    acting_user is required on every write and is recorded as created_by /
    updated_by on the trade and audit_user on the entry.
"""

import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Generator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from fx_config.schema import ValidationSettings
from fx_trading.db.engine import (
    get_read_session_factory,
    get_session_factory,
    is_busy_error,
    read_scope,
    session_scope,
)
from fx_trading.db.types import MONEY_DECIMAL_PLACES, RATE_DECIMAL_PLACES, round_money
from fx_trading.domain.clock import Clock, SystemClock
from fx_trading.domain.dtos import (
    TradeAuditEntry,
    TradeFilter,
    TradeRequest,
    TradeSnapshot,
    TradeUpdate,
)
from fx_trading.domain.lifecycle import check_transition
from fx_trading.domain.reference import format_trade_reference
from fx_trading.domain.validation import validate_trade_request, validate_trade_update
from fx_trading.exceptions import (
    ConcurrencyConflictError,
    StorageBusyError,
    TradeValidationError,
    Violation,
)
from fx_trading.logging_config import LogContext, get_logger
from fx_trading.models.trade import Trade, TradeStatus
from fx_trading.selectors.trade_selector import TradeSelector
from fx_trading.services.audit_recorder import AuditRecorder
from fx_trading.services.sequence_service import SequenceService
from fx_trading.services.trade_store import TradeStore

logger = get_logger("services.trade")

# created_by / updated_by / audit_user column width
_MAX_ACTOR_LENGTH = 50


def _require_actor(acting_user: Any) -> str:
    if not isinstance(acting_user, str) or not acting_user.strip():
        raise TradeValidationError((
            Violation("acting_user", "required", "Acting user is required"),
        ))
    actor = acting_user.strip()
    if len(actor) > _MAX_ACTOR_LENGTH:
        raise TradeValidationError((
            Violation(
                "acting_user",
                "max_length",
                f"acting_user cannot exceed {_MAX_ACTOR_LENGTH} characters",
            ),
        ))
    return actor


def _coerce_status(status: Any) -> TradeStatus:
    if isinstance(status, TradeStatus):
        return status
    try:
        return TradeStatus(str(status).strip().upper())
    except ValueError:
        raise TradeValidationError((
            Violation("status", "invalid_format", f"Unknown trade status: {status!r}"),
        )) from None


class TradeService:
    """
    Records and queries FX spot trades.

    Contract:
        Write methods open their own transaction on the writer session
        factory and commit before returning.  Read methods use the reader
        session factory and never write.

    Guarantees:
        - Returned TradeSnapshot / TradeAuditEntry values are frozen and
          detached; they reflect committed state.
        - Instances hold no per-call state and may be shared across threads.

    Usage:
        service = TradeService(clock=SystemClock())
        trade = service.record_trade(
            TradeRequest(trade_date="2025-10-12", value_date="2025-10-14",
                         direction="BUY", base_currency="EUR",
                         quote_currency="USD", base_amount="1000000.00",
                         exchange_rate="1.085000"),
            acting_user="alice",
        )
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        read_session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        settings: ValidationSettings | None = None,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._read_session_factory = read_session_factory or get_read_session_factory()
        self._clock = clock or SystemClock()
        self._settings = settings or ValidationSettings()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def settings(self) -> ValidationSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, operation: str) -> Generator[Session, None, None]:
        """Write transaction; lock/pool timeouts become StorageBusyError."""
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as exc:
            if not is_busy_error(exc):
                raise
            logger.warning(
                "storage_busy",
                extra={"operation": operation, "error": str(exc)},
            )
            raise StorageBusyError(operation, type(exc).__name__) from exc

    @contextmanager
    def _read(self) -> Generator[TradeSelector, None, None]:
        with read_scope(self._read_session_factory) as session:
            yield TradeSelector(session)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_trade(self, request: TradeRequest, acting_user: str) -> TradeSnapshot:
        """
        Validate, reference, persist and audit a new trade.

        Preconditions:
            ``acting_user`` is a non-empty identifier.
        Postconditions:
            One trades row and one CREATE audit entry are committed; the
            returned snapshot equals ``find_by_id(snapshot.id)``.

        Raises:
            TradeValidationError: listing every violated rule.
            StorageBusyError: write lock not acquired in time.
        """
        actor = _require_actor(acting_user)

        with LogContext.bind(correlation_id=str(uuid.uuid4()), actor=actor):
            booking_date = self._clock.today()
            try:
                validated = validate_trade_request(request, self._settings, booking_date)
            except TradeValidationError as exc:
                logger.warning(
                    "trade_validation_failed",
                    extra={"violations": [v.as_dict() for v in exc.violations]},
                )
                raise

            base_amount = round_money(validated.base_amount, MONEY_DECIMAL_PLACES)
            exchange_rate = round_money(validated.exchange_rate, RATE_DECIMAL_PLACES)
            if validated.quote_amount is not None:
                quote_amount = round_money(validated.quote_amount, MONEY_DECIMAL_PLACES)
            else:
                quote_amount = round_money(base_amount * exchange_rate, MONEY_DECIMAL_PLACES)

            with self._unit_of_work("record_trade") as session:
                sequence = SequenceService(session, self._clock).allocate(booking_date)
                reference = format_trade_reference(booking_date, sequence)
                now = self._clock.now()

                trade = TradeStore(session).add(
                    Trade(
                        trade_reference=reference,
                        trade_date=validated.trade_date,
                        value_date=validated.value_date,
                        direction=validated.direction,
                        base_currency=validated.base_currency,
                        quote_currency=validated.quote_currency,
                        base_amount=base_amount,
                        exchange_rate=exchange_rate,
                        quote_amount=quote_amount,
                        counterparty=validated.counterparty,
                        trader=validated.trader,
                        notes=validated.notes,
                        status=validated.status or TradeStatus.PENDING,
                        created_by=actor,
                        created_at=now,
                        updated_by=actor,
                        updated_at=now,
                    )
                )
                snapshot = TradeSnapshot.from_model(trade)
                currency_pair = trade.currency_pair
                AuditRecorder(session, self._clock).record_create(snapshot, actor)

            logger.info(
                "trade_recorded",
                extra={
                    "trade_id": snapshot.id,
                    "trade_reference": snapshot.trade_reference,
                    "currency_pair": currency_pair,
                    "base_amount": snapshot.base_amount,
                    "quote_amount": snapshot.quote_amount,
                },
            )
            return snapshot

    def update_trade(
        self,
        trade_id: int,
        update: TradeUpdate,
        acting_user: str,
        expected_version: int | None = None,
    ) -> TradeSnapshot:
        """
        Change status, notes and/or counterparty of an existing trade.

        Args:
            trade_id: Trade to update.
            update: Fields to change; None fields are left alone.
            acting_user: Recorded as updated_by and audit_user.
            expected_version: If given, the update applies only when the
                persisted version still matches.

        Raises:
            TradeNotFoundError: unknown id.
            TradeValidationError: empty update or invalid field.
            InvalidStatusTransitionError: backward or skipping status change.
            ConcurrencyConflictError: version mismatch.
            StorageBusyError: write lock not acquired in time.
        """
        actor = _require_actor(acting_user)

        with LogContext.bind(
            correlation_id=str(uuid.uuid4()), actor=actor, trade_id=trade_id
        ):
            try:
                changes = validate_trade_update(update, self._settings)

                with self._unit_of_work("update_trade") as session:
                    store = TradeStore(session)
                    trade = store.get_for_update(trade_id)
                    store.check_version(trade, expected_version)
                    before = TradeSnapshot.from_model(trade)

                    new_status = changes.get("status")
                    if new_status is not None and self._settings.enforce_status_transitions:
                        check_transition(trade.id, trade.status, new_status)

                    for name, value in changes.items():
                        setattr(trade, name, value)
                    trade.updated_by = actor
                    trade.updated_at = self._clock.now()
                    # Every accepted update is a persisted mutation, even one
                    # that re-asserts current values.
                    flag_modified(trade, "updated_by")

                    store.save(trade)
                    after = TradeSnapshot.from_model(trade)
                    AuditRecorder(session, self._clock).record_update(before, after, actor)

            except TradeValidationError as exc:
                logger.warning(
                    "trade_validation_failed",
                    extra={"violations": [v.as_dict() for v in exc.violations]},
                )
                raise
            except ConcurrencyConflictError as exc:
                logger.warning(
                    "concurrency_conflict",
                    extra={
                        "expected_version": exc.expected_version,
                        "actual_version": exc.actual_version,
                    },
                )
                raise

            logger.info(
                "trade_updated",
                extra={
                    "trade_reference": after.trade_reference,
                    "version": after.version,
                    "changed_fields": list(before.changed_fields(after)),
                },
            )
            return after

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, trade_id: int) -> TradeSnapshot:
        """Raises TradeNotFoundError for an unknown id."""
        with self._read() as selector:
            return selector.get_trade(trade_id)

    def find_by_reference(self, trade_reference: str) -> TradeSnapshot:
        """Raises TradeNotFoundError for an unknown reference."""
        with self._read() as selector:
            return selector.get_by_reference(trade_reference)

    def find_by_date_range(self, start: date, end: date) -> tuple[TradeSnapshot, ...]:
        with self._read() as selector:
            return selector.by_date_range(start, end)

    def find_by_status(self, status: TradeStatus | str) -> tuple[TradeSnapshot, ...]:
        status = _coerce_status(status)
        with self._read() as selector:
            return selector.by_status(status)

    def find_by_trader(self, trader: str) -> tuple[TradeSnapshot, ...]:
        with self._read() as selector:
            return selector.by_trader(trader)

    def find_recent(self, from_date: date) -> tuple[TradeSnapshot, ...]:
        with self._read() as selector:
            return selector.recent_since(from_date)

    def list_all(self) -> tuple[TradeSnapshot, ...]:
        with self._read() as selector:
            return selector.all_trades()

    def list_trades(self, trade_filter: TradeFilter | None = None) -> tuple[TradeSnapshot, ...]:
        trade_filter = trade_filter or TradeFilter()
        status = (
            _coerce_status(trade_filter.status)
            if trade_filter.status is not None
            else None
        )
        with self._read() as selector:
            return selector.filtered(trade_filter, status)

    def count_by_trade_date(self, trade_date: date) -> int:
        with self._read() as selector:
            return selector.count_on(trade_date)

    def get_audit_history(self, trade_id: int) -> tuple[TradeAuditEntry, ...]:
        """Entries for ``trade_id``, newest first; empty for unknown ids."""
        with self._read() as selector:
            return selector.audit_history(trade_id)

    def get_audit_between(
        self, start: datetime, end: datetime
    ) -> tuple[TradeAuditEntry, ...]:
        with self._read() as selector:
            return selector.audit_between(start, end)
