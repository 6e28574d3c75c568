"""
Invoice API endpoints.

Invoices are issued automatically when a delivery is confirmed; the issue
endpoint retries issuance for delivered orders whose follow-up failed.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from sandtrack.api.deps import Invoices
from sandtrack.core.logging import get_logger
from sandtrack.database.models.invoice import InvoicePaymentStatus
from sandtrack.schemas.invoices import InvoiceResponse

logger = get_logger(__name__)

router = APIRouter(tags=["invoices"])


@router.get(
    "/invoices",
    response_model=list[InvoiceResponse],
    summary="List invoices",
)
async def list_invoices(
    service: Invoices,
    order_id: Optional[UUID] = Query(None),
    payment_status: Optional[InvoicePaymentStatus] = Query(None),
) -> list[InvoiceResponse]:
    invoices = await service.list_invoices(order_id=order_id, payment_status=payment_status)
    return [InvoiceResponse.model_validate(invoice) for invoice in invoices]


@router.post(
    "/orders/{order_id}/invoice",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue invoice for a delivered order",
)
async def issue_invoice(order_id: UUID, service: Invoices) -> InvoiceResponse:
    """
    Issue the invoice of a delivered order.

    Returns the existing invoice when the order was already invoiced.
    """
    invoice = await service.issue_for_order(order_id)
    logger.info(
        "Invoice issued via API",
        order_id=str(order_id),
        invoice_number=invoice.invoice_number,
    )
    return InvoiceResponse.model_validate(invoice)
