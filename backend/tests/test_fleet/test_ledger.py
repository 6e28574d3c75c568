"""
Tests for the truck and driver availability ledger.
"""

from uuid import uuid4

import pytest

from sandtrack.core.exceptions import ConflictError, EntityNotFoundError
from sandtrack.database.models.fleet import TruckStatus
from sandtrack.services.fleet.ledger import ResourceLedger


@pytest.fixture
def ledger(session, settings) -> ResourceLedger:
    return ResourceLedger(session, settings)


class TestResourceLedger:
    async def test_pool_views(self, ledger, factory, scenario) -> None:
        await factory.truck("T-9", status=TruckStatus.MAINTENANCE)
        await factory.driver("D-9", available=False)

        assert [t.license_plate for t in await ledger.available_trucks()] == ["T-1"]
        assert [d.name for d in await ledger.available_drivers()] == ["D-1"]

    async def test_claim_and_release(self, ledger, session, scenario) -> None:
        truck, driver = await ledger.claim(scenario.truck.id, scenario.driver.id, scenario.order.id)
        await session.commit()

        assert truck.status is TruckStatus.ASSIGNED
        assert truck.assigned_order_id == scenario.order.id
        assert truck.driver_id == scenario.driver.id
        assert driver.available is False
        assert await ledger.available_trucks() == []
        assert await ledger.available_drivers() == []

        await ledger.release(scenario.truck.id, scenario.driver.id)
        await session.commit()

        assert [t.id for t in await ledger.available_trucks()] == [scenario.truck.id]
        assert [d.id for d in await ledger.available_drivers()] == [scenario.driver.id]

    async def test_claimed_truck_is_a_conflict(self, ledger, session, factory, scenario) -> None:
        other_driver = await factory.driver("D-2")
        await ledger.claim(scenario.truck.id, scenario.driver.id, scenario.order.id)
        await session.commit()

        with pytest.raises(ConflictError, match="Truck T-1 is not available"):
            await ledger.check_claimable(scenario.truck.id, other_driver.id)

    async def test_unknown_driver(self, ledger, scenario) -> None:
        with pytest.raises(EntityNotFoundError, match="Driver"):
            await ledger.check_claimable(scenario.truck.id, uuid4())
