"""
Delivery lifecycle API endpoints.

This module exposes the assignment, in-transit, tracking and confirmation
operations of the lifecycle service together with the delivery read side
and the downloadable traceability report.
"""

from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from sandtrack.api.deps import LifecycleService
from sandtrack.core.logging import get_logger
from sandtrack.schemas.deliveries import (
    AssignDeliveryRequest,
    ConfirmDeliveryRequest,
    ConfirmDeliveryResponse,
    DeliveryResponse,
    StatusHistoryResponse,
    TrackingStatusRequest,
)
from sandtrack.schemas.invoices import InvoiceResponse
from sandtrack.services.deliveries.enums import DeliveryStatus

logger = get_logger(__name__)

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.get(
    "",
    response_model=list[DeliveryResponse],
    summary="List deliveries",
)
async def list_deliveries(
    service: LifecycleService,
    status_filter: Optional[DeliveryStatus] = Query(None, alias="status"),
    order_id: Optional[UUID] = Query(None),
) -> list[DeliveryResponse]:
    deliveries = await service.list_deliveries(status=status_filter, order_id=order_id)
    return [DeliveryResponse.from_delivery(delivery) for delivery in deliveries]


@router.post(
    "",
    response_model=DeliveryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign truck and driver",
    description="Create a delivery for a certified order and take the truck and driver out of the pool",
)
async def assign_delivery(
    request: AssignDeliveryRequest,
    service: LifecycleService,
) -> DeliveryResponse:
    """
    Assign a truck and driver to an order.

    Raises:
        404 if the order, truck or driver does not exist, 422 if the order
        is not dispatchable or uncertified, 409 if a resource is taken
    """
    logger.info(
        "Assigning delivery",
        order_id=str(request.order_id),
        truck_id=str(request.truck_id),
        driver_id=str(request.driver_id),
    )
    delivery = await service.assign(request.order_id, request.truck_id, request.driver_id)
    return DeliveryResponse.from_delivery(delivery)


@router.get(
    "/{delivery_id}",
    response_model=DeliveryResponse,
    summary="Get delivery",
)
async def get_delivery(delivery_id: UUID, service: LifecycleService) -> DeliveryResponse:
    delivery = await service.get_delivery(delivery_id)
    return DeliveryResponse.from_delivery(delivery)


@router.get(
    "/{delivery_id}/history",
    response_model=list[StatusHistoryResponse],
    summary="Get delivery status history",
)
async def get_delivery_history(
    delivery_id: UUID,
    service: LifecycleService,
) -> list[StatusHistoryResponse]:
    history = await service.get_status_history(delivery_id)
    return [StatusHistoryResponse.model_validate(entry) for entry in history]


@router.post(
    "/{delivery_id}/in-transit",
    response_model=DeliveryResponse,
    summary="Mark delivery in transit",
)
async def mark_in_transit(delivery_id: UUID, service: LifecycleService) -> DeliveryResponse:
    delivery = await service.mark_in_transit(delivery_id)
    return DeliveryResponse.from_delivery(delivery)


@router.post(
    "/{delivery_id}/tracking-status",
    response_model=DeliveryResponse,
    summary="Record tracking status",
    description="Status update reported by the location tracking integration",
)
async def record_tracking_status(
    delivery_id: UUID,
    request: TrackingStatusRequest,
    service: LifecycleService,
) -> DeliveryResponse:
    delivery = await service.record_tracking_status(delivery_id, request.status)
    return DeliveryResponse.from_delivery(delivery)


@router.post(
    "/{delivery_id}/confirm",
    response_model=ConfirmDeliveryResponse,
    summary="Confirm delivery",
    description="Capture proof of delivery, complete the delivery and issue its invoice",
)
async def confirm_delivery(
    delivery_id: UUID,
    request: ConfirmDeliveryRequest,
    service: LifecycleService,
) -> ConfirmDeliveryResponse:
    """
    Confirm a delivery with the customer's signature.

    The delivery stays confirmed when invoicing fails; the response then
    carries ``invoice_error`` instead of an invoice.
    """
    result = await service.confirm_delivery(delivery_id, request)
    return ConfirmDeliveryResponse(
        delivery=DeliveryResponse.from_delivery(result.delivery),
        invoice=InvoiceResponse.model_validate(result.invoice) if result.invoice else None,
        invoice_error=result.invoice_error,
    )


@router.get(
    "/{delivery_id}/traceability-report",
    summary="Download traceability report",
    response_class=Response,
)
async def download_traceability_report(
    delivery_id: UUID,
    service: LifecycleService,
    fmt: Literal["pdf", "json"] = Query("pdf", alias="format"),
) -> Response:
    report = await service.build_traceability_report(delivery_id, fmt)
    logger.info(
        "Traceability report generated",
        delivery_id=str(delivery_id),
        filename=report.filename,
        size_bytes=len(report.content),
    )
    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )
