"""
Delivery lifecycle Pydantic schemas for API request/response validation.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sandtrack.database.models.delivery import Delivery
from sandtrack.schemas.common import UTCDateTime
from sandtrack.schemas.invoices import InvoiceResponse
from sandtrack.services.deliveries.checkpoints import Checkpoint, GpsPoint
from sandtrack.services.deliveries.enums import DeliveryStatus
from sandtrack.services.deliveries.signature import Signature, SignatureCapture


class AssignDeliveryRequest(BaseModel):
    """Truck and driver assignment for an order."""

    order_id: UUID
    truck_id: UUID
    driver_id: UUID


class TrackingStatusRequest(BaseModel):
    status: DeliveryStatus = Field(
        ...,
        description="Status reported by location tracking (arrived or delivering)",
    )


class ConfirmDeliveryRequest(SignatureCapture):
    """
    Proof of delivery captured at the well site.

    Signer name, title and signature image are required; blank values are
    rejected by the lifecycle service with a 400.
    """


class SignatureResponse(BaseModel):
    """Stored signature without the image payloads."""

    signer_name: str
    signer_title: str
    timestamp: UTCDateTime
    lat: float
    lng: float
    has_photo: bool

    @classmethod
    def from_signature(cls, signature: Signature) -> "SignatureResponse":
        return cls(
            signer_name=signature.signer_name,
            signer_title=signature.signer_title,
            timestamp=signature.timestamp,
            lat=signature.location.lat,
            lng=signature.location.lng,
            has_photo=bool(signature.photo),
        )


class DeliveryResponse(BaseModel):
    """Delivery with resolved order, truck and driver display values."""

    id: UUID
    order_id: UUID
    order_number: str
    customer_name: Optional[str] = None
    truck_id: UUID
    truck_plate: str
    driver_id: UUID
    driver_name: str
    status: DeliveryStatus
    estimated_arrival: Optional[UTCDateTime] = None
    actual_arrival: Optional[UTCDateTime] = None
    wait_time_minutes: int
    checkpoints: list[Checkpoint]
    gps_track: list[GpsPoint]
    signature: Optional[SignatureResponse] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    @classmethod
    def from_delivery(cls, delivery: Delivery) -> "DeliveryResponse":
        order = delivery.order
        signature = (
            SignatureResponse.from_signature(Signature.model_validate(delivery.signature))
            if delivery.signature
            else None
        )
        return cls(
            id=delivery.id,
            order_id=delivery.order_id,
            order_number=order.order_number,
            customer_name=order.customer.name if order.customer else None,
            truck_id=delivery.truck_id,
            truck_plate=delivery.truck.license_plate,
            driver_id=delivery.driver_id,
            driver_name=delivery.driver.name,
            status=delivery.status,
            estimated_arrival=delivery.estimated_arrival,
            actual_arrival=delivery.actual_arrival,
            wait_time_minutes=delivery.wait_time_minutes,
            checkpoints=[Checkpoint.model_validate(cp) for cp in delivery.checkpoints or []],
            gps_track=[GpsPoint.model_validate(p) for p in delivery.gps_track or []],
            signature=signature,
            created_at=delivery.created_at,
            updated_at=delivery.updated_at,
        )


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_status: Optional[DeliveryStatus] = None
    to_status: DeliveryStatus
    change_reason: Optional[str] = None
    created_at: UTCDateTime


class ConfirmDeliveryResponse(BaseModel):
    delivery: DeliveryResponse
    invoice: Optional[InvoiceResponse] = None
    invoice_error: Optional[str] = None
