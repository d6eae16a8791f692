from __future__ import annotations

import pytest

from smartsnack.errors import IllegalTransition
from smartsnack.models import OrderStatus
from smartsnack.status import LEGAL_TRANSITIONS, check_transition, is_legal

LEGAL = {
    (OrderStatus.PENDING, OrderStatus.PREPARING),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.PREPARING, OrderStatus.COMPLETED),
    (OrderStatus.PREPARING, OrderStatus.CANCELLED),
}

ALL_PAIRS = [(current, requested) for current in OrderStatus for requested in OrderStatus]


@pytest.mark.parametrize("current,requested", ALL_PAIRS)
def test_only_kitchen_moves_are_legal(current, requested):
    assert is_legal(current, requested) == ((current, requested) in LEGAL)


@pytest.mark.parametrize("current,requested", [pair for pair in ALL_PAIRS if pair not in LEGAL])
def test_check_transition_rejects_everything_else(current, requested):
    with pytest.raises(IllegalTransition) as excinfo:
        check_transition("abc", current, requested)
    assert excinfo.value.current == current.value
    assert excinfo.value.requested == requested.value


def test_paid_is_never_a_single_order_target():
    assert all(OrderStatus.PAID not in targets for targets in LEGAL_TRANSITIONS.values())


def test_terminal_states_have_no_exits():
    assert LEGAL_TRANSITIONS[OrderStatus.PAID] == frozenset()
    assert LEGAL_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()


def test_unknown_order_is_rejected():
    with pytest.raises(IllegalTransition, match="unknown"):
        check_transition("missing", None, OrderStatus.PREPARING)
