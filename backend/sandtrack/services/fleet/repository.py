"""
Truck and driver repositories.

Mutations are staged on the loaded rows and flushed immediately so that a
lost optimistic-lock race surfaces here as ConflictError.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.exceptions import EntityNotFoundError
from sandtrack.core.logging import get_logger
from sandtrack.database.errors import translate_store_error
from sandtrack.database.models.fleet import Driver, Truck, TruckStatus

logger = get_logger(__name__)


class TruckRepository:
    """Repository for truck data access operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_truck(self, truck_id: uuid.UUID) -> Optional[Truck]:
        try:
            return await self.session.get(Truck, truck_id)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to load truck", truck_id=str(truck_id)) from e

    async def list_trucks(self, status: Optional[TruckStatus] = None) -> Sequence[Truck]:
        """List trucks ordered by plate, optionally filtered by status."""
        stmt = select(Truck).order_by(Truck.license_plate)
        if status is not None:
            stmt = stmt.where(Truck.status == status)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to list trucks") from e
        return result.scalars().all()

    async def set_truck_assignment(
        self,
        truck_id: uuid.UUID,
        status: TruckStatus,
        order_id: Optional[uuid.UUID],
        driver_id: Optional[uuid.UUID],
    ) -> Truck:
        """
        Set a truck's status and current assignment.

        Raises:
            EntityNotFoundError: If the truck does not exist
            ConflictError: If the truck was changed concurrently
        """
        truck = await self.get_truck(truck_id)
        if truck is None:
            raise EntityNotFoundError("Truck", truck_id)

        truck.status = status
        truck.assigned_order_id = order_id
        truck.driver_id = driver_id

        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to update truck assignment", truck_id=str(truck_id)
            ) from e

        logger.info(
            "Truck assignment updated",
            truck_id=str(truck_id),
            license_plate=truck.license_plate,
            status=status.value,
            order_id=str(order_id) if order_id else None,
        )
        return truck


class DriverRepository:
    """Repository for driver data access operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_driver(self, driver_id: uuid.UUID) -> Optional[Driver]:
        try:
            return await self.session.get(Driver, driver_id)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to load driver", driver_id=str(driver_id)) from e

    async def list_drivers(self, available_only: bool = False) -> Sequence[Driver]:
        stmt = select(Driver).order_by(Driver.name)
        if available_only:
            stmt = stmt.where(Driver.available.is_(True))

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to list drivers") from e
        return result.scalars().all()

    async def set_driver_availability(self, driver_id: uuid.UUID, available: bool) -> Driver:
        """
        Flip a driver's availability flag.

        Raises:
            EntityNotFoundError: If the driver does not exist
            ConflictError: If the driver was changed concurrently
        """
        driver = await self.get_driver(driver_id)
        if driver is None:
            raise EntityNotFoundError("Driver", driver_id)

        driver.available = available

        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to update driver availability", driver_id=str(driver_id)
            ) from e

        logger.info(
            "Driver availability updated",
            driver_id=str(driver_id),
            available=available,
        )
        return driver
