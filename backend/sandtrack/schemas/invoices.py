"""
Invoice Pydantic schemas for API responses.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from sandtrack.database.models.invoice import InvoicePaymentStatus


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    order_id: UUID
    customer_id: UUID
    issue_date: date
    due_date: date
    line_items: list[dict[str, Any]]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    payment_status: InvoicePaymentStatus
    paid_date: Optional[date] = None
    days_outstanding: int
    attachments: dict[str, Any]
