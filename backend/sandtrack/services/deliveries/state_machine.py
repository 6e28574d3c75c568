"""Delivery state machine with transition guards and side effects.

The state machine validates a status change against the lifecycle graph,
runs the guard registered for the edge, applies the change, runs the side
effect registered for the target status and appends a history row. It works
inside the caller's unit of work and never commits: the lifecycle service
groups the delivery, order, truck and driver writes into one transaction.
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.exceptions import StateTransitionError
from sandtrack.core.logging import get_logger
from sandtrack.database.models.delivery import Delivery, DeliveryStatusHistory
from sandtrack.services.deliveries.enums import (
    DeliveryStatus,
    get_allowed_delivery_transitions,
    validate_delivery_status_transition,
)

logger = get_logger(__name__)

Guard = Callable[[Delivery], bool]
SideEffect = Callable[[Delivery, datetime], None]


class DeliveryStateMachine:
    """State machine for delivery lifecycle transitions."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._transition_guards: Dict[
            tuple[DeliveryStatus, DeliveryStatus], Guard
        ] = self._initialize_guards()
        self._side_effects: Dict[DeliveryStatus, SideEffect] = (
            self._initialize_side_effects()
        )

    def _initialize_guards(self) -> Dict[tuple[DeliveryStatus, DeliveryStatus], Guard]:
        return {
            (DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED): self._guard_proof_of_delivery,
            (DeliveryStatus.ARRIVED, DeliveryStatus.DELIVERED): self._guard_proof_of_delivery,
            (DeliveryStatus.DELIVERING, DeliveryStatus.DELIVERED): self._guard_proof_of_delivery,
        }

    def _initialize_side_effects(self) -> Dict[DeliveryStatus, SideEffect]:
        return {
            DeliveryStatus.ARRIVED: self._effect_arrived,
            DeliveryStatus.DELIVERED: self._effect_delivered,
        }

    def validate_transition(
        self,
        delivery: Delivery,
        target_status: DeliveryStatus,
    ) -> bool:
        """Validate that delivery may move to target_status.

        Raises:
            StateTransitionError: If the edge is not in the lifecycle graph
                or its guard rejects the delivery
        """
        current_status = delivery.status

        if not validate_delivery_status_transition(current_status, target_status):
            allowed = get_allowed_delivery_transitions(current_status)
            raise StateTransitionError(
                f"Delivery cannot move from {current_status.value} to "
                f"{target_status.value}",
                current=current_status.value,
                target=target_status.value,
                delivery_id=str(delivery.id),
                allowed_transitions=sorted(s.value for s in allowed),
            )

        guard = self._transition_guards.get((current_status, target_status))
        if guard is not None and not guard(delivery):
            raise StateTransitionError(
                f"Transition guard failed for {current_status.value} -> "
                f"{target_status.value}",
                current=current_status.value,
                target=target_status.value,
                delivery_id=str(delivery.id),
                guard_failed=True,
            )

        return True

    def apply_transition(
        self,
        delivery: Delivery,
        target_status: DeliveryStatus,
        now: datetime,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Apply a validated status change and its side effect.

        Args:
            delivery: Delivery to transition
            target_status: Status to move to
            now: Instant of the change
            reason: Optional reason stored in history
            metadata: Optional metadata stored in history
        """
        self.validate_transition(delivery, target_status)

        old_status = delivery.status
        delivery.status = target_status

        side_effect = self._side_effects.get(target_status)
        if side_effect is not None:
            side_effect(delivery, now)

        self._record_status_change(delivery.id, old_status, target_status, now, reason, metadata)

        logger.info(
            "Delivery transition applied",
            delivery_id=str(delivery.id),
            transition=f"{old_status.value}->{target_status.value}",
        )

    def record_assignment(
        self,
        delivery: Delivery,
        now: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record the creation of a delivery in the assigned status."""
        self._record_status_change(
            delivery.id,
            None,
            DeliveryStatus.ASSIGNED,
            now,
            "Truck and driver assigned",
            metadata,
        )

    def get_allowed_transitions(self, delivery: Delivery) -> Set[DeliveryStatus]:
        return get_allowed_delivery_transitions(delivery.status)

    def _record_status_change(
        self,
        delivery_id: uuid.UUID,
        old_status: Optional[DeliveryStatus],
        new_status: DeliveryStatus,
        now: datetime,
        reason: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> None:
        self.session.add(
            DeliveryStatusHistory(
                delivery_id=delivery_id,
                from_status=old_status,
                to_status=new_status,
                change_reason=reason,
                change_metadata=metadata or {},
                created_at=now,
                updated_at=now,
            )
        )

    # Transition Guards

    def _guard_proof_of_delivery(self, delivery: Delivery) -> bool:
        """A delivery is only delivered with a complete signature attached."""
        signature = delivery.signature or {}
        return all(
            str(signature.get(field) or "").strip()
            for field in ("signer_name", "signer_title", "signature_image")
        )

    # Side Effects

    def _effect_arrived(self, delivery: Delivery, now: datetime) -> None:
        if delivery.actual_arrival is None:
            delivery.actual_arrival = now

    def _effect_delivered(self, delivery: Delivery, now: datetime) -> None:
        delivery.actual_arrival = now


def get_delivery_state_machine(session: AsyncSession) -> DeliveryStateMachine:
    """Factory function to create a delivery state machine."""
    return DeliveryStateMachine(session)
