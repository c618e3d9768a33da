"""Unit tests for the trade status state machine."""

import pytest

from fx_trading.domain.lifecycle import (
    VALID_TRANSITIONS,
    check_transition,
    is_valid_transition,
)
from fx_trading.exceptions import InvalidStatusTransitionError, TradeValidationError
from fx_trading.models.trade import TradeStatus

PENDING, CONFIRMED, SETTLED = TradeStatus.PENDING, TradeStatus.CONFIRMED, TradeStatus.SETTLED


class TestTransitions:

    @pytest.mark.parametrize("from_status, to_status", [(PENDING, CONFIRMED), (CONFIRMED, SETTLED)])
    def test_forward_single_step_allowed(self, from_status, to_status):
        check_transition(1, from_status, to_status)

    @pytest.mark.parametrize("status", list(TradeStatus))
    def test_same_status_allowed(self, status):
        assert is_valid_transition(status, status)

    @pytest.mark.parametrize(
        "from_status, to_status",
        [(PENDING, SETTLED), (CONFIRMED, PENDING), (SETTLED, CONFIRMED), (SETTLED, PENDING)],
    )
    def test_backward_or_skipping_rejected(self, from_status, to_status):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            check_transition(7, from_status, to_status)
        error = exc_info.value
        assert error.trade_id == 7
        assert error.from_status == from_status.value
        assert error.to_status == to_status.value
        assert error.code == "INVALID_STATUS_TRANSITION"

    def test_transition_error_is_a_validation_error(self):
        with pytest.raises(TradeValidationError) as exc_info:
            check_transition(1, SETTLED, PENDING)
        assert exc_info.value.fields == ("status",)

    def test_settled_is_terminal(self):
        assert VALID_TRANSITIONS[SETTLED] == frozenset()

    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(TradeStatus)
