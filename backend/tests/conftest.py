"""
Pytest configuration and shared test fixtures.

Every test gets its own SQLite database file so that several sessions can
hit the same store concurrently, a fake clock that advances one second per
reading, and a factory for the dispatch records the lifecycle works on.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import sandtrack.database.models  # noqa: F401
from sandtrack.core.config import Settings, get_settings
from sandtrack.database.base import Base
from sandtrack.database.connection import create_engine, create_session_factory, get_db
from sandtrack.database.models.fleet import Driver, Truck, TruckStatus
from sandtrack.database.models.invoice import MasterServiceAgreement
from sandtrack.database.models.order import Customer, Order
from sandtrack.database.models.quality import Certificate, QCStatus, QCTest
from sandtrack.services.deliveries.service import DeliveryLifecycleService
from sandtrack.services.invoices.service import InvoiceService
from sandtrack.services.orders.enums import OrderStatus

START = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock returning a controllable instant, one second later per reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class DispatchFactory:
    """Creates committed dispatch records in their own sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _save(self, *instances):
        async with self.session_factory() as session:
            session.add_all(instances)
            await session.commit()
        return instances[0]

    async def customer(self, name: str = "YPF S.A.") -> Customer:
        return await self._save(Customer(name=name))

    async def msa(self, customer: Customer, payment_terms: Optional[str] = "Net 45"):
        return await self._save(
            MasterServiceAgreement(customer_id=customer.id, payment_terms=payment_terms)
        )

    async def order(
        self,
        customer: Customer,
        order_number: str = "O-100",
        status: OrderStatus = OrderStatus.READY,
        msa: Optional[MasterServiceAgreement] = None,
        certified: bool = True,
        **fields,
    ) -> Order:
        fields.setdefault("delivery_location", "Loma Campana Pad 7")
        fields.setdefault("product_name", "Frac sand 30/50")
        fields.setdefault("quantity_tons", 30)
        fields.setdefault("unit_price", Decimal("416.67"))
        fields.setdefault("total_amount", Decimal("12500.00"))

        order = Order(
            id=uuid.uuid4(),
            order_number=order_number,
            customer_id=customer.id,
            status=status,
            msa_id=msa.id if msa else None,
            **fields,
        )
        records = [order]
        if certified:
            certificate = Certificate(
                id=uuid.uuid4(),
                certificate_number=f"CERT-{order_number}",
                lot_number=f"LOT-{order_number}",
                order_id=order.id,
                passed=True,
            )
            records += [
                certificate,
                QCTest(
                    lot_number=certificate.lot_number,
                    order_id=order.id,
                    status=QCStatus.PASSED,
                    certificate_id=certificate.id,
                ),
            ]
        return await self._save(*records)

    async def failed_qc_test(self, order: Order) -> QCTest:
        return await self._save(
            QCTest(lot_number=f"LOT-{order.order_number}", order_id=order.id, status=QCStatus.FAILED)
        )

    async def truck(
        self,
        license_plate: str = "T-1",
        status: TruckStatus = TruckStatus.AVAILABLE,
    ) -> Truck:
        return await self._save(Truck(license_plate=license_plate, capacity_tons=30, status=status))

    async def driver(self, name: str = "D-1", **fields) -> Driver:
        return await self._save(Driver(name=name, **fields))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'sandtrack.db'}",
    )


@pytest.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def factory(session_factory) -> DispatchFactory:
    return DispatchFactory(session_factory)


@pytest.fixture
async def scenario(factory: DispatchFactory) -> SimpleNamespace:
    """Order O-100, ready and certified, under a Net 45 MSA; truck T-1 and driver D-1 free."""
    customer = await factory.customer()
    msa = await factory.msa(customer, "Net 45")
    order = await factory.order(customer, "O-100", msa=msa)
    truck = await factory.truck("T-1")
    driver = await factory.driver("D-1")
    return SimpleNamespace(customer=customer, msa=msa, order=order, truck=truck, driver=driver)


@pytest.fixture
def make_service(settings: Settings, clock: FakeClock):
    """Build a lifecycle service on a session, optionally with other settings."""

    def _make(session: AsyncSession, **overrides) -> DeliveryLifecycleService:
        service_settings = settings.model_copy(update=overrides) if overrides else settings
        return DeliveryLifecycleService(session, service_settings, clock=clock)

    return _make


@pytest.fixture
def service(session: AsyncSession, make_service) -> DeliveryLifecycleService:
    return make_service(session)


@pytest.fixture
def invoice_service(session: AsyncSession, settings: Settings, clock: FakeClock) -> InvoiceService:
    return InvoiceService(session, settings, clock=clock)


@pytest.fixture
async def async_client(session_factory, settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an asynchronous test client bound to the test database.

    Yields:
        AsyncClient: Asynchronous test client for the FastAPI app
    """
    from sandtrack.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
