"""
Order status transitions.

TRANSITIONS is the only source of truth for who may move where. Payment
reconciliation has one extra, private edge (pending_payment -> pending) that
no staff or customer action can use.
"""

from apps.web.core.exceptions import TransitionError
from apps.web.restaurant.models import OrderStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING_PAYMENT: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# Reconciliation-only edge
PAYMENT_CONFIRMED_TRANSITION = (OrderStatus.PENDING_PAYMENT, OrderStatus.PENDING)


def allowed_transitions(current: str) -> frozenset[str]:
    return TRANSITIONS.get(current, frozenset())


def can_transition(current: str, target: str) -> bool:
    return target in allowed_transitions(current)


def ensure_transition(current: str, target: str) -> None:
    """
    Raise unless ``current -> target`` is in the transition table.

    Raises:
        TransitionError: If the transition is not allowed.
    """
    if not can_transition(current, target):
        raise TransitionError(current, target)


def status_after_payment(current: str) -> str | None:
    """Status an order moves to once its payment is captured, or None to stay put."""
    source, target = PAYMENT_CONFIRMED_TRANSITION
    return target if current == source else None
