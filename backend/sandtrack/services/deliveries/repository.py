"""
Delivery data access repository.

Deliveries are created on assignment and only ever updated afterwards.
Writes are flushed immediately so uniqueness and version conflicts surface
as ConflictError inside the caller's transaction.
"""

import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sandtrack.core.exceptions import EntityNotFoundError
from sandtrack.core.logging import get_logger
from sandtrack.database.errors import translate_store_error
from sandtrack.database.models.delivery import Delivery, DeliveryStatusHistory
from sandtrack.database.models.order import Order
from sandtrack.services.deliveries.enums import DeliveryStatus

logger = get_logger(__name__)

# Columns callers may change through update_delivery
UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "estimated_arrival",
        "actual_arrival",
        "wait_time_minutes",
        "checkpoints",
        "gps_track",
        "signature",
    }
)


class DeliveryRepository:
    """Repository for delivery data access operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_delivery(self, **fields: Any) -> Delivery:
        """
        Create a delivery.

        Args:
            **fields: Delivery column values

        Returns:
            The flushed delivery

        Raises:
            ConflictError: If the truck or driver already has an active delivery
        """
        delivery = Delivery(id=fields.pop("id", None) or uuid.uuid4(), **fields)
        self.session.add(delivery)

        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise translate_store_error(
                e,
                "Failed to create delivery",
                order_id=str(fields.get("order_id")),
                truck_id=str(fields.get("truck_id")),
            ) from e

        logger.info(
            "Delivery created",
            delivery_id=str(delivery.id),
            order_id=str(delivery.order_id),
            truck_id=str(delivery.truck_id),
            driver_id=str(delivery.driver_id),
        )
        return delivery

    async def get_delivery(
        self,
        delivery_id: uuid.UUID,
        refresh: bool = False,
    ) -> Optional[Delivery]:
        """
        Get delivery by ID with its order, truck and driver loaded.

        Args:
            delivery_id: Delivery identifier
            refresh: Reload the row and its relationships even when the
                instance is already in the session
        """
        stmt = (
            select(Delivery)
            .where(Delivery.id == delivery_id)
            .options(
                selectinload(Delivery.order).selectinload(Order.customer),
                selectinload(Delivery.truck),
                selectinload(Delivery.driver),
            )
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to load delivery", delivery_id=str(delivery_id)
            ) from e
        return result.scalars().first()

    async def update_delivery(
        self,
        delivery_id: uuid.UUID,
        fields: dict[str, Any],
    ) -> Delivery:
        """
        Update delivery columns.

        Raises:
            EntityNotFoundError: If the delivery does not exist
            ValueError: If fields names a column that may not be changed
            ConflictError: If the delivery was changed concurrently
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update delivery fields: {sorted(unknown)}")

        try:
            delivery = await self.session.get(Delivery, delivery_id)
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to load delivery", delivery_id=str(delivery_id)
            ) from e
        if delivery is None:
            raise EntityNotFoundError("Delivery", delivery_id)

        for name, value in fields.items():
            setattr(delivery, name, value)

        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to update delivery", delivery_id=str(delivery_id)
            ) from e

        logger.debug(
            "Delivery updated",
            delivery_id=str(delivery_id),
            fields=sorted(fields),
        )
        return delivery

    async def list_deliveries(
        self,
        status: Optional[DeliveryStatus] = None,
        order_id: Optional[uuid.UUID] = None,
    ) -> Sequence[Delivery]:
        """List deliveries newest first with optional filters."""
        stmt = (
            select(Delivery)
            .options(
                selectinload(Delivery.order).selectinload(Order.customer),
                selectinload(Delivery.truck),
                selectinload(Delivery.driver),
            )
            .order_by(Delivery.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(Delivery.status == status)
        if order_id is not None:
            stmt = stmt.where(Delivery.order_id == order_id)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to list deliveries") from e
        return result.scalars().all()

    async def find_active_for_truck(self, truck_id: uuid.UUID) -> Optional[Delivery]:
        return await self._find_active(Delivery.truck_id == truck_id, truck_id=str(truck_id))

    async def find_active_for_driver(self, driver_id: uuid.UUID) -> Optional[Delivery]:
        return await self._find_active(Delivery.driver_id == driver_id, driver_id=str(driver_id))

    async def _find_active(self, criterion, **context: Any) -> Optional[Delivery]:
        stmt = (
            select(Delivery)
            .where(criterion, Delivery.status != DeliveryStatus.DELIVERED)
            .limit(1)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to look up active deliveries", **context) from e
        return result.scalars().first()

    async def list_status_history(
        self,
        delivery_id: uuid.UUID,
    ) -> Sequence[DeliveryStatusHistory]:
        stmt = (
            select(DeliveryStatusHistory)
            .where(DeliveryStatusHistory.delivery_id == delivery_id)
            .order_by(DeliveryStatusHistory.created_at)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to load delivery history", delivery_id=str(delivery_id)
            ) from e
        return result.scalars().all()
