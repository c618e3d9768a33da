"""
Trade lifecycle state machine.

``VALID_TRANSITIONS`` lists, for each status, the statuses a trade may move
to in a single update.  Movement is forward-only and one step at a time;
SETTLED is terminal.  Re-asserting the current status is not a transition
and is always accepted (the update may still change notes or counterparty).
"""

from fx_trading.exceptions import InvalidStatusTransitionError
from fx_trading.models.trade import TradeStatus

VALID_TRANSITIONS: dict[TradeStatus, frozenset[TradeStatus]] = {
    TradeStatus.PENDING: frozenset({TradeStatus.CONFIRMED}),
    TradeStatus.CONFIRMED: frozenset({TradeStatus.SETTLED}),
    # Terminal
    TradeStatus.SETTLED: frozenset(),
}


def is_valid_transition(from_status: TradeStatus, to_status: TradeStatus) -> bool:
    return from_status == to_status or to_status in VALID_TRANSITIONS[from_status]


def check_transition(
    trade_id: int,
    from_status: TradeStatus,
    to_status: TradeStatus,
) -> None:
    """
    Raises:
        InvalidStatusTransitionError: if ``to_status`` is not reachable from
            ``from_status`` in one step.
    """
    if not is_valid_transition(from_status, to_status):
        raise InvalidStatusTransitionError(
            trade_id, from_status.value, to_status.value
        )
