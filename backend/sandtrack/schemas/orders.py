"""
Order Pydantic schemas for API responses.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sandtrack.database.models.order import Order
from sandtrack.schemas.common import UTCDateTime
from sandtrack.services.orders.enums import OrderStatus


class OrderResponse(BaseModel):
    """Order summary with route endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    customer_id: UUID
    customer_name: Optional[str] = None
    status: OrderStatus
    delivery_location: str
    product_name: str
    quantity_tons: int
    unit_price: Decimal
    total_amount: Decimal = Field(..., description="Order total, invoiced as-is")
    msa_id: Optional[UUID] = None
    quarry_name: Optional[str] = None
    quarry_lat: Optional[float] = None
    quarry_lng: Optional[float] = None
    well_name: Optional[str] = None
    well_lat: Optional[float] = None
    well_lng: Optional[float] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        response = cls.model_validate(order)
        if order.customer is not None:
            response = response.model_copy(update={"customer_name": order.customer.name})
        return response
