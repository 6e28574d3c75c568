"""
Resource availability ledger.

The ledger is the single place that decides whether a truck and a driver
may be taken for a delivery, and that moves them in and out of the pool.
A truck is claimable when its status is ``available`` and no active
delivery references it; a driver when its flag is set and no active
delivery references it.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.config import Settings, get_settings
from sandtrack.core.exceptions import (
    ConflictError,
    EntityNotFoundError,
    PreconditionFailedError,
)
from sandtrack.core.logging import get_logger
from sandtrack.database.models.fleet import Driver, Truck, TruckStatus
from sandtrack.services.deliveries.repository import DeliveryRepository
from sandtrack.services.fleet.repository import DriverRepository, TruckRepository

logger = get_logger(__name__)


class ResourceLedger:
    """View and mutation API over truck and driver availability."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.trucks = TruckRepository(session)
        self.drivers = DriverRepository(session)
        self.deliveries = DeliveryRepository(session)

    async def available_trucks(self) -> Sequence[Truck]:
        return await self.trucks.list_trucks(status=TruckStatus.AVAILABLE)

    async def available_drivers(self) -> Sequence[Driver]:
        return await self.drivers.list_drivers(available_only=True)

    async def check_claimable(
        self,
        truck_id: uuid.UUID,
        driver_id: uuid.UUID,
    ) -> tuple[Truck, Driver]:
        """
        Verify a truck and driver can be taken for a new delivery.

        Raises:
            EntityNotFoundError: If either record does not exist
            ConflictError: If either is unavailable or already engaged
            PreconditionFailedError: If the driver has no hours left and the
                hours limit is enforced
        """
        truck = await self.trucks.get_truck(truck_id)
        if truck is None:
            raise EntityNotFoundError("Truck", truck_id)

        driver = await self.drivers.get_driver(driver_id)
        if driver is None:
            raise EntityNotFoundError("Driver", driver_id)

        if not truck.is_available:
            raise ConflictError(
                f"Truck {truck.license_plate} is not available "
                f"(status: {truck.status.value})",
                truck_id=str(truck_id),
                truck_status=truck.status.value,
            )

        if not driver.available:
            raise ConflictError(
                f"Driver {driver.name} is not available",
                driver_id=str(driver_id),
            )

        active = await self.deliveries.find_active_for_truck(truck_id)
        if active is not None:
            raise ConflictError(
                f"Truck {truck.license_plate} is already on delivery {active.id}",
                truck_id=str(truck_id),
                delivery_id=str(active.id),
            )

        active = await self.deliveries.find_active_for_driver(driver_id)
        if active is not None:
            raise ConflictError(
                f"Driver {driver.name} is already on delivery {active.id}",
                driver_id=str(driver_id),
                delivery_id=str(active.id),
            )

        if self.settings.enforce_driver_hours_limit and not driver.has_hours_remaining:
            raise PreconditionFailedError(
                f"Driver {driver.name} has reached the hours limit "
                f"({driver.hours_worked:g}/{driver.hours_limit:g})",
                driver_id=str(driver_id),
                hours_worked=driver.hours_worked,
                hours_limit=driver.hours_limit,
            )

        return truck, driver

    async def claim(
        self,
        truck_id: uuid.UUID,
        driver_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> tuple[Truck, Driver]:
        """
        Take a truck and driver out of the pool for an order.

        The writes are staged in the caller's transaction.
        """
        await self.check_claimable(truck_id, driver_id)

        truck = await self.trucks.set_truck_assignment(
            truck_id,
            TruckStatus.ASSIGNED,
            order_id=order_id,
            driver_id=driver_id,
        )
        driver = await self.drivers.set_driver_availability(driver_id, False)

        logger.info(
            "Resources claimed",
            truck_id=str(truck_id),
            driver_id=str(driver_id),
            order_id=str(order_id),
        )
        return truck, driver

    async def release(self, truck_id: uuid.UUID, driver_id: uuid.UUID) -> None:
        """Return a truck and driver to the pool."""
        await self.trucks.set_truck_assignment(
            truck_id,
            TruckStatus.AVAILABLE,
            order_id=None,
            driver_id=None,
        )
        await self.drivers.set_driver_availability(driver_id, True)

        logger.info(
            "Resources released",
            truck_id=str(truck_id),
            driver_id=str(driver_id),
        )
