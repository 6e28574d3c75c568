"""
Order data access repository.

Read access for the dispatch board and the forward-only status updates the
delivery lifecycle performs on orders.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.exceptions import EntityNotFoundError, StateTransitionError
from sandtrack.core.logging import get_logger
from sandtrack.database.errors import translate_store_error
from sandtrack.database.models.order import Order
from sandtrack.services.orders.enums import (
    OrderStatus,
    get_allowed_order_transitions,
    validate_order_status_transition,
)

logger = get_logger(__name__)


class OrderRepository:
    """Repository for order data access operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        """
        Get order by ID.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            return await self.session.get(Order, order_id)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to load order", order_id=str(order_id)) from e

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
    ) -> Sequence[Order]:
        """
        List orders, newest first.

        Args:
            status: Optional status filter
        """
        stmt = select(Order).order_by(Order.created_at.desc())
        if status is not None:
            stmt = stmt.where(Order.status == status)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to list orders") from e

        orders = result.scalars().all()
        logger.debug(
            "Orders listed",
            status=status.value if status else None,
            count=len(orders),
        )
        return orders

    async def set_order_status(
        self,
        order_id: uuid.UUID,
        status: OrderStatus,
    ) -> Order:
        """
        Move an order to a new status.

        The change is staged in the current unit of work; the caller commits.

        Raises:
            EntityNotFoundError: If the order does not exist
            StateTransitionError: If the move is not a forward transition
        """
        order = await self.get_order(order_id)
        if order is None:
            raise EntityNotFoundError("Order", order_id)

        if order.status == status:
            return order

        if not validate_order_status_transition(order.status, status):
            allowed = get_allowed_order_transitions(order.status)
            raise StateTransitionError(
                f"Order {order.order_number} cannot move from "
                f"{order.status.value} to {status.value}",
                current=order.status.value,
                target=status.value,
                order_id=str(order_id),
                allowed_transitions=sorted(s.value for s in allowed),
            )

        old_status = order.status
        order.status = status

        logger.info(
            "Order status updated",
            order_id=str(order_id),
            order_number=order.order_number,
            transition=f"{old_status.value}->{status.value}",
        )
        return order
