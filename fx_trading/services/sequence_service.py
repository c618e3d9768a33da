"""
SequenceService -- per-date reference numbers via locked counter rows.

Responsibility:
    Hands out the sequence component of ``FX-YYYYMMDD-NNNN``: for each
    booking date, 1, 2, 3, ... with no duplicates.  The counter lives in the
    ``trade_sequence`` table, one row per date.

Architecture position:
    Services -- imperative shell infrastructure.  Called only by
    TradeService.record_trade, inside its write transaction.

Invariants enforced:
    - Uniqueness: the counter row is read and advanced while holding the
      write lock (``BEGIN IMMEDIATE`` on SQLite, ``SELECT ... FOR UPDATE`` on
      PostgreSQL), so two transactions can never read the same value.
    - No max-plus-one: the trades table is never scanned to derive the next
      number.  The counter row is the sole source of truth.
    - Transactional: the increment becomes visible only when the caller's
      transaction commits.  A rolled-back record_trade returns its number.
    - Date independence: each date has its own row and its own lock, so
      allocations on different dates never wait on each other (PostgreSQL).

Failure modes:
    - IntegrityError: two transactions creating the same date's row at once
      (PostgreSQL only).  Handled by savepoint rollback and re-read.
    - OperationalError / lock_timeout: write lock not acquired in time;
      surfaced to TradeService, which maps it to StorageBusyError.

Audit relevance:
    Every allocation is logged at DEBUG with the date and value.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fx_trading.domain.clock import Clock, SystemClock
from fx_trading.logging_config import get_logger
from fx_trading.models.trade_sequence import TradeSequence

logger = get_logger("services.sequence")


class SequenceService:
    """
    Allocates per-date trade sequence numbers.

    Contract:
        ``allocate(d)`` returns the next unused number for ``d``.  The caller
        owns the transaction; this service only flushes.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT guarantee gap-free numbering across crashes of the
          database itself; within normal operation numbers are dense.

    Usage:
        with session_scope() as session:
            seq = SequenceService(session, clock).allocate(booking_date)
            # If the transaction rolls back, seq is not consumed
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def _locked_row(self, booking_date: date) -> TradeSequence | None:
        return self._session.execute(
            select(TradeSequence)
            .where(TradeSequence.trade_date == booking_date)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def allocate(self, booking_date: date) -> int:
        """
        Reserve and return the next sequence number for ``booking_date``.

        Preconditions:
            The caller is inside an open write transaction.

        Postconditions:
            - Returns an integer >= 1 never previously returned for this
              date by a committed transaction.
            - The counter row for the date holds ``returned + 1``.
        """
        counter = self._locked_row(booking_date)

        if counter is None:
            # First allocation for this date.  A savepoint keeps a losing
            # creation race from rolling back the caller's transaction.
            savepoint = self._session.begin_nested()
            try:
                self._session.add(
                    TradeSequence(
                        trade_date=booking_date,
                        next_sequence=2,
                        last_updated=self._clock.now(),
                    )
                )
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"booking_date": booking_date, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"booking_date": booking_date},
                )
                savepoint.rollback()
                self._session.expire_all()
                counter = self._locked_row(booking_date)
                if counter is None:
                    raise

        value = counter.next_sequence
        counter.next_sequence = value + 1
        counter.last_updated = self._clock.now()
        self._session.flush()

        logger.debug(
            "sequence_allocated",
            extra={"booking_date": booking_date, "value": value},
        )
        return value

    def peek(self, booking_date: date) -> int | None:
        """Next number for ``booking_date`` without reserving it; None if none issued yet."""
        counter = self._session.execute(
            select(TradeSequence).where(TradeSequence.trade_date == booking_date)
        ).scalar_one_or_none()
        return counter.next_sequence if counter else None
