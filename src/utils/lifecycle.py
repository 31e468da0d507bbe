"""
Order status workflow: pending -> preparing -> shipped.

The only move is one step forward. ``shipped`` is terminal.
"""

from typing import Optional

from db.models import ORDER_STATUSES
from utils.errors import InvalidTransitionError
from utils.labels import order_status_label

INITIAL_STATUS = ORDER_STATUSES[0]
TERMINAL_STATUS = ORDER_STATUSES[-1]

_NEXT = dict(zip(ORDER_STATUSES, ORDER_STATUSES[1:]))


def next_status(status: str) -> str:
    """Return the successor of ``status``; raise if there is none."""
    if status not in ORDER_STATUSES:
        raise InvalidTransitionError(f"Unknown order status '{status}'.")
    if status == TERMINAL_STATUS:
        raise InvalidTransitionError(
            f"The order is already {order_status_label(status).lower()}."
        )
    return _NEXT[status]


def check_transition(current: str, target: Optional[str]) -> str:
    """
    Validate a requested move and return the status to store.
    With no target the move is simply "advance one step".
    """
    successor = next_status(current)
    if target is not None and target != successor:
        raise InvalidTransitionError(
            f"Cannot move an order from {order_status_label(current)} "
            f"to {order_status_label(target)}."
        )
    return successor


def can_edit(status: str) -> bool:
    """Clients may revise line items only before preparation starts."""
    return status == INITIAL_STATUS


def can_delete(status: str) -> bool:
    return status == TERMINAL_STATUS
