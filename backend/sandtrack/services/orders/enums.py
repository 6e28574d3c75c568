"""Order status enum and its forward-only transition rules.

An order is drafted and confirmed by the commercial side, marked ready when
the product is certified, then moved along by the delivery lifecycle:
dispatched on assignment, delivered on proof of delivery and invoiced once
its invoice exists.
"""

from enum import Enum
from typing import Dict, Set


class OrderStatus(str, Enum):
    """Order lifecycle status.

    Valid transitions:
    - DRAFT -> CONFIRMED
    - CONFIRMED -> READY, DISPATCHED
    - READY -> DISPATCHED
    - DISPATCHED -> DELIVERED
    - DELIVERED -> INVOICED
    - INVOICED -> (terminal state)
    """

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    READY = "ready"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    INVOICED = "invoiced"

    def is_terminal(self) -> bool:
        return self is OrderStatus.INVOICED

    def is_dispatchable(self) -> bool:
        """Check if a delivery may be assigned to an order in this status."""
        return self in {OrderStatus.CONFIRMED, OrderStatus.READY}


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.DRAFT: {OrderStatus.CONFIRMED},
    OrderStatus.CONFIRMED: {OrderStatus.READY, OrderStatus.DISPATCHED},
    OrderStatus.READY: {OrderStatus.DISPATCHED},
    OrderStatus.DISPATCHED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.INVOICED},
    OrderStatus.INVOICED: set(),
}


def validate_order_status_transition(
    current: OrderStatus,
    new: OrderStatus,
) -> bool:
    """Check whether an order may move from current to new."""
    return new in ORDER_STATUS_TRANSITIONS.get(current, set())


def get_allowed_order_transitions(current: OrderStatus) -> Set[OrderStatus]:
    """Return a copy of the statuses reachable from current."""
    return ORDER_STATUS_TRANSITIONS.get(current, set()).copy()
