"""
Typed Exception Hierarchy for the FX trade recorder.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP layer, batch jobs, tests) must react to failures by TYPE, not by
parsing messages:
  1. Every error has a typed exception class.
  2. Every exception has a class-level CODE (machine-readable, API-safe).
  3. Exceptions carry structured DATA as attributes.

Example:
    try:
        service.update_trade(trade_id, update, acting_user="alice")
    except ConcurrencyConflictError as e:
        # Re-read and retry
        retry_later(e.trade_id)
    except TradeValidationError as e:
        return {"error": e.code, "violations": [v.as_dict() for v in e.violations]}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FxTradingError (base)
    |
    +-- TradeValidationError
    |   +-- InvalidStatusTransitionError
    |
    +-- TradeNotFoundError
    |
    +-- ConcurrencyError
    |   +-- ConcurrencyConflictError
    |   +-- StorageBusyError
    |
    +-- IntegrityFaultError
    |   +-- UniquenessViolationError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES
===============================================================================

Code                      | When Raised                               | Retry?
--------------------------|-------------------------------------------|-------
VALIDATION_FAILED         | Input breaks an amount/date/currency rule | No
INVALID_STATUS_TRANSITION | Backward or skipping status change        | No
TRADE_NOT_FOUND           | Unknown trade id / reference              | No
CONCURRENCY_CONFLICT      | Version mismatch on update                | Re-read
STORAGE_BUSY              | Write lock not acquired within bound      | Backoff
UNIQUENESS_VIOLATION      | Duplicate trade reference (allocator bug) | NEVER
IMMUTABILITY_VIOLATION    | Update/delete of append-only data         | No

===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass


class FxTradingError(Exception):
    """
    Base exception for all FX trading errors.

    All subclasses must have a `code` class attribute.
    """

    code: str = "FX_TRADING_ERROR"


# Validation


@dataclass(frozen=True)
class Violation:
    """One violated validation rule."""

    field: str
    rule: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "rule": self.rule, "message": self.message}


class TradeValidationError(FxTradingError):
    """Trade input failed one or more validation rules. Nothing was persisted."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, violations: tuple[Violation, ...] | list[Violation]):
        self.violations = tuple(violations)
        details = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        super().__init__(f"Trade validation failed: {details}")

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(v.field for v in self.violations)

    @property
    def rules(self) -> tuple[str, ...]:
        return tuple(v.rule for v in self.violations)


class InvalidStatusTransitionError(TradeValidationError):
    """Status change is not a permitted forward step."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, trade_id: int, from_status: str, to_status: str):
        self.trade_id = trade_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__((
            Violation(
                field="status",
                rule="status_transition",
                message=(
                    f"Cannot move trade {trade_id} from {from_status} "
                    f"to {to_status}"
                ),
            ),
        ))


# Lookup


class TradeNotFoundError(FxTradingError):
    """Trade with given id (or reference) was not found."""

    code: str = "TRADE_NOT_FOUND"

    def __init__(self, trade_id: int | str):
        self.trade_id = trade_id
        super().__init__(f"Trade not found: {trade_id}")


# Concurrency


class ConcurrencyError(FxTradingError):
    """Base exception for retryable concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrencyConflictError(ConcurrencyError):
    """Optimistic version check failed: the trade changed underneath the caller."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(
        self,
        trade_id: int,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.trade_id = trade_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Trade {trade_id} was modified by another transaction "
            f"(expected version {expected_version}, found {actual_version}); "
            "re-read the trade and retry"
        )


class StorageBusyError(ConcurrencyError):
    """The write lock could not be acquired within the configured bound."""

    code: str = "STORAGE_BUSY"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"Storage busy during {operation}; retry with backoff"
            + (f" ({detail})" if detail else "")
        )


# Integrity faults (internal, never retried)


class IntegrityFaultError(FxTradingError):
    """Base exception for states that indicate a bug, not bad input."""

    code: str = "INTEGRITY_FAULT"


class UniquenessViolationError(IntegrityFaultError):
    """
    A trade reference was issued twice.

    The sequence allocator makes this structurally impossible; observing it
    means the allocator is broken. Do not retry.
    """

    code: str = "UNIQUENESS_VIOLATION"

    def __init__(self, trade_reference: str):
        self.trade_reference = trade_reference
        super().__init__(
            f"Duplicate trade reference {trade_reference}: "
            "sequence allocator integrity fault"
        )


# Immutability


class ImmutabilityError(FxTradingError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete append-only or frozen data."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: object, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
