"""Order status machine."""

from __future__ import annotations

from smartsnack.errors import IllegalTransition
from smartsnack.models import OrderStatus

# Transitions a single order may take from the kitchen side.
LEGAL_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.PAID: frozenset(),
}

# `paid` is reached only through table settlement, from any of these.
SETTLEABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.COMPLETED}
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.PAID, OrderStatus.CANCELLED})


def is_legal(current: OrderStatus, requested: OrderStatus) -> bool:
    """Whether a single-order transition is allowed."""
    return requested in LEGAL_TRANSITIONS.get(current, frozenset())


def check_transition(order_id: str, current: OrderStatus | None, requested: OrderStatus) -> None:
    """Raise IllegalTransition unless `current -> requested` is a legal single-order move."""
    if current is None:
        raise IllegalTransition(order_id, None, requested.value)
    if not is_legal(current, requested):
        raise IllegalTransition(order_id, current.value, requested.value)
