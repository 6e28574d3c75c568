"""Delivery status enum and the lifecycle transition graph.

The lifecycle only ever moves forward:

    assigned -> in_transit -> {arrived | delivering} -> delivered

``in_transit`` and ``arrived`` may skip straight to ``delivered`` when the
proof of delivery is captured without intermediate tracking updates.
"""

from enum import Enum
from typing import Dict, Set


class DeliveryStatus(str, Enum):
    """Delivery lifecycle status.

    Valid transitions:
    - ASSIGNED -> IN_TRANSIT
    - IN_TRANSIT -> ARRIVED, DELIVERING, DELIVERED
    - ARRIVED -> DELIVERING, DELIVERED
    - DELIVERING -> DELIVERED
    - DELIVERED -> (terminal state)
    """

    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    ARRIVED = "arrived"
    DELIVERING = "delivering"
    DELIVERED = "delivered"

    @classmethod
    def from_string(cls, value: str) -> "DeliveryStatus":
        """Convert string to DeliveryStatus enum.

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(value.lower())
        except ValueError:
            valid_values = ", ".join([s.value for s in cls])
            raise ValueError(
                f"Invalid delivery status: {value}. "
                f"Valid values are: {valid_values}"
            )

    def is_terminal(self) -> bool:
        return self is DeliveryStatus.DELIVERED

    def is_active(self) -> bool:
        """Check if the delivery still holds its truck and driver."""
        return self is not DeliveryStatus.DELIVERED


DELIVERY_STATUS_TRANSITIONS: Dict[DeliveryStatus, Set[DeliveryStatus]] = {
    DeliveryStatus.ASSIGNED: {DeliveryStatus.IN_TRANSIT},
    DeliveryStatus.IN_TRANSIT: {
        DeliveryStatus.ARRIVED,
        DeliveryStatus.DELIVERING,
        DeliveryStatus.DELIVERED,
    },
    DeliveryStatus.ARRIVED: {
        DeliveryStatus.DELIVERING,
        DeliveryStatus.DELIVERED,
    },
    DeliveryStatus.DELIVERING: {DeliveryStatus.DELIVERED},
    DeliveryStatus.DELIVERED: set(),
}

# Statuses from which proof of delivery may be captured
CONFIRMABLE_STATUSES: frozenset[DeliveryStatus] = frozenset(
    {DeliveryStatus.IN_TRANSIT, DeliveryStatus.ARRIVED}
)

# Statuses reported by the location tracking integration
TRACKING_STATUSES: frozenset[DeliveryStatus] = frozenset(
    {DeliveryStatus.ARRIVED, DeliveryStatus.DELIVERING}
)


def validate_delivery_status_transition(
    current: DeliveryStatus,
    new: DeliveryStatus,
) -> bool:
    """Check whether a delivery may move from current to new."""
    return new in DELIVERY_STATUS_TRANSITIONS.get(current, set())


def get_allowed_delivery_transitions(current: DeliveryStatus) -> Set[DeliveryStatus]:
    """Return a copy of the statuses reachable from current."""
    return DELIVERY_STATUS_TRANSITIONS.get(current, set()).copy()
