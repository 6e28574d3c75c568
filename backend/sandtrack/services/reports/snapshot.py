"""Immutable view of a delivery used for reporting."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from sandtrack.core.clock import ensure_utc
from sandtrack.core.config import Settings
from sandtrack.database.models.delivery import Delivery
from sandtrack.services.deliveries.checkpoints import Checkpoint, GpsPoint, Route
from sandtrack.services.deliveries.enums import DeliveryStatus
from sandtrack.services.deliveries.signature import Signature


class DeliverySnapshot(BaseModel):
    """
    Frozen copy of a delivery with its order, customer, truck and driver
    resolved to display values.
    """

    model_config = ConfigDict(frozen=True)

    delivery_id: uuid.UUID
    status: DeliveryStatus
    order_id: uuid.UUID
    order_number: str
    customer_name: str
    truck_plate: str
    driver_name: str
    route: Route
    created_at: datetime
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    wait_time_minutes: int = 0
    checkpoints: tuple[Checkpoint, ...] = ()
    gps_track: tuple[GpsPoint, ...] = ()
    signature: Optional[Signature] = None
    certificate_number: Optional[str] = None

    @classmethod
    def from_delivery(
        cls,
        delivery: Delivery,
        settings: Settings,
        certificate_number: Optional[str] = None,
    ) -> "DeliverySnapshot":
        """
        Build a snapshot from a delivery loaded with its relationships.

        Args:
            delivery: Delivery with order, customer, truck and driver loaded
            settings: Settings providing default route endpoints
            certificate_number: Certificate of the delivered lot, if known
        """
        order = delivery.order
        return cls(
            delivery_id=delivery.id,
            status=delivery.status,
            order_id=order.id,
            order_number=order.order_number,
            customer_name=order.customer.name if order.customer else "",
            truck_plate=delivery.truck.license_plate,
            driver_name=delivery.driver.name,
            route=Route.for_order(order, settings),
            created_at=ensure_utc(delivery.created_at),
            estimated_arrival=ensure_utc(delivery.estimated_arrival),
            actual_arrival=ensure_utc(delivery.actual_arrival),
            wait_time_minutes=delivery.wait_time_minutes or 0,
            checkpoints=tuple(
                Checkpoint.model_validate(cp) for cp in delivery.checkpoints or []
            ),
            gps_track=tuple(
                GpsPoint.model_validate(point) for point in delivery.gps_track or []
            ),
            signature=(
                Signature.model_validate(delivery.signature)
                if delivery.signature
                else None
            ),
            certificate_number=certificate_number,
        )

    @property
    def is_delivered(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED
