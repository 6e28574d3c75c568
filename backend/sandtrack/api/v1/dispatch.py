"""
Dispatch board API endpoints.

Read-only views of the orders waiting for trucks and of the truck and
driver pools the dispatcher assigns from.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from sandtrack.api.deps import DatabaseSession
from sandtrack.core.exceptions import EntityNotFoundError
from sandtrack.core.logging import get_logger
from sandtrack.database.models.fleet import TruckStatus
from sandtrack.schemas.fleet import DriverResponse, TruckResponse
from sandtrack.schemas.orders import OrderResponse
from sandtrack.services.fleet.repository import DriverRepository, TruckRepository
from sandtrack.services.orders.enums import OrderStatus
from sandtrack.services.orders.repository import OrderRepository

logger = get_logger(__name__)

router = APIRouter(tags=["dispatch"])


@router.get(
    "/orders",
    response_model=list[OrderResponse],
    summary="List orders",
)
async def list_orders(
    db: DatabaseSession,
    status: Optional[OrderStatus] = Query(None, description="Filter by order status"),
) -> list[OrderResponse]:
    orders = await OrderRepository(db).list_orders(status=status)
    return [OrderResponse.from_order(order) for order in orders]


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
)
async def get_order(order_id: UUID, db: DatabaseSession) -> OrderResponse:
    order = await OrderRepository(db).get_order(order_id)
    if order is None:
        raise EntityNotFoundError("Order", order_id)
    return OrderResponse.from_order(order)


@router.get(
    "/trucks",
    response_model=list[TruckResponse],
    summary="List trucks",
)
async def list_trucks(
    db: DatabaseSession,
    status: Optional[TruckStatus] = Query(None, description="Filter by truck status"),
) -> list[TruckResponse]:
    """
    List trucks, optionally filtered by status.

    Use ``status=available`` for the trucks that can take an assignment.
    """
    trucks = await TruckRepository(db).list_trucks(status=status)
    return [TruckResponse.model_validate(truck) for truck in trucks]


@router.get(
    "/drivers",
    response_model=list[DriverResponse],
    summary="List drivers",
)
async def list_drivers(
    db: DatabaseSession,
    available_only: bool = Query(False, description="Only drivers free for assignment"),
) -> list[DriverResponse]:
    drivers = await DriverRepository(db).list_drivers(available_only=available_only)
    return [DriverResponse.model_validate(driver) for driver in drivers]
