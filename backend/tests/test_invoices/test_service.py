"""
Integration tests for InvoiceService.
"""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from sandtrack.core.exceptions import (
    ConflictError,
    EntityNotFoundError,
    PreconditionFailedError,
)
from sandtrack.database.models.invoice import Invoice, InvoicePaymentStatus
from sandtrack.database.models.order import Order
from sandtrack.services.invoices.service import InvoiceService
from sandtrack.services.orders.enums import OrderStatus


@pytest.fixture
async def customer(factory):
    return await factory.customer()


@pytest.fixture
async def delivered_order(factory, customer):
    msa = await factory.msa(customer, "Net 45")
    return await factory.order(customer, "O-100", status=OrderStatus.DELIVERED, msa=msa)


async def seed_invoice(session_factory, order: Order, invoice_number: str) -> None:
    async with session_factory() as session:
        session.add(
            Invoice(
                invoice_number=invoice_number,
                order_id=order.id,
                customer_id=order.customer_id,
                issue_date=date(2024, 3, 1),
                due_date=date(2024, 3, 31),
                line_items=[],
                subtotal=Decimal("100.00"),
                tax=Decimal("0.00"),
                total=Decimal("100.00"),
            )
        )
        await session.commit()


async def invoice_numbers(session_factory) -> list[str]:
    async with session_factory() as session:
        result = await session.execute(select(Invoice.invoice_number).order_by(Invoice.invoice_number))
        return list(result.scalars())


async def order_status(session_factory, order_id) -> OrderStatus:
    async with session_factory() as session:
        return (await session.get(Order, order_id)).status


class TestIssueForOrder:
    async def test_issues_invoice_for_delivered_order(
        self, invoice_service, delivered_order, session_factory
    ) -> None:
        invoice = await invoice_service.issue_for_order(
            delivered_order.id, attachments={"certificate_number": "CERT-O-100"}
        )

        assert invoice.invoice_number == "INV-2024-0001"
        assert invoice.issue_date == date(2024, 3, 15)
        assert invoice.due_date == date(2024, 4, 29)
        assert invoice.subtotal == Decimal("12500.00")
        assert invoice.tax == Decimal("0.00")
        assert invoice.total == Decimal("12500.00")
        assert invoice.payment_status is InvoicePaymentStatus.PENDING
        assert invoice.days_outstanding == 0
        assert invoice.paid_date is None
        assert invoice.attachments == {"certificate_number": "CERT-O-100"}
        assert invoice.line_items == [
            {
                "description": "Frac sand 30/50 - O-100",
                "quantity": 30,
                "unit_price": "416.67",
                "amount": "12500.00",
            }
        ]
        assert await order_status(session_factory, delivered_order.id) is OrderStatus.INVOICED

    async def test_second_call_returns_existing_invoice(
        self, invoice_service, delivered_order, session_factory
    ) -> None:
        first = await invoice_service.issue_for_order(delivered_order.id)
        second = await invoice_service.issue_for_order(delivered_order.id)

        assert second.id == first.id
        assert await invoice_numbers(session_factory) == ["INV-2024-0001"]

    async def test_default_terms_without_msa(self, invoice_service, factory, customer) -> None:
        order = await factory.order(customer, "O-150", status=OrderStatus.DELIVERED)

        invoice = await invoice_service.issue_for_order(order.id)

        assert invoice.due_date == date(2024, 4, 14)

    async def test_default_terms_for_unparsable_msa(self, invoice_service, factory, customer) -> None:
        msa = await factory.msa(customer, "due on receipt")
        order = await factory.order(customer, "O-151", status=OrderStatus.DELIVERED, msa=msa)

        invoice = await invoice_service.issue_for_order(order.id)

        assert invoice.due_date == date(2024, 4, 14)

    async def test_sequence_continues_within_year(
        self, invoice_service, factory, customer, delivered_order, session_factory
    ) -> None:
        other = await factory.order(customer, "O-099", status=OrderStatus.INVOICED)
        await seed_invoice(session_factory, other, "INV-2024-0001")

        invoice = await invoice_service.issue_for_order(delivered_order.id)

        assert invoice.invoice_number == "INV-2024-0002"

    async def test_previous_year_does_not_count(
        self, invoice_service, factory, customer, delivered_order, session_factory
    ) -> None:
        other = await factory.order(customer, "O-050", status=OrderStatus.INVOICED)
        await seed_invoice(session_factory, other, "INV-2023-0007")

        invoice = await invoice_service.issue_for_order(delivered_order.id)

        assert invoice.invoice_number == "INV-2024-0001"

    async def test_number_collision_is_recomputed(
        self, invoice_service, factory, customer, delivered_order, session_factory
    ) -> None:
        other = await factory.order(customer, "O-099", status=OrderStatus.INVOICED)
        await seed_invoice(session_factory, other, "INV-2024-0002")

        invoice = await invoice_service.issue_for_order(delivered_order.id)

        assert invoice.invoice_number == "INV-2024-0003"
        assert await order_status(session_factory, delivered_order.id) is OrderStatus.INVOICED

    async def test_collision_without_retries_left(
        self, session, settings, clock, factory, customer, delivered_order, session_factory
    ) -> None:
        other = await factory.order(customer, "O-099", status=OrderStatus.INVOICED)
        await seed_invoice(session_factory, other, "INV-2024-0002")
        single_attempt = InvoiceService(
            session, settings.model_copy(update={"invoice_number_max_attempts": 1}), clock=clock
        )

        with pytest.raises(ConflictError, match="Could not allocate an invoice number"):
            await single_attempt.issue_for_order(delivered_order.id)

        assert await order_status(session_factory, delivered_order.id) is OrderStatus.DELIVERED

    async def test_order_must_be_delivered(
        self, invoice_service, factory, customer, session_factory
    ) -> None:
        order = await factory.order(customer, "O-200", status=OrderStatus.DISPATCHED)

        with pytest.raises(PreconditionFailedError, match="cannot be invoiced"):
            await invoice_service.issue_for_order(order.id)

        assert await invoice_numbers(session_factory) == []

    async def test_unknown_order(self, invoice_service) -> None:
        with pytest.raises(EntityNotFoundError):
            await invoice_service.issue_for_order(uuid4())


class TestConcurrentIssuance:
    async def test_same_order_yields_one_invoice(
        self, settings, clock, delivered_order, session_factory
    ) -> None:
        async def issue():
            async with session_factory() as session:
                invoice = await InvoiceService(session, settings, clock=clock).issue_for_order(
                    delivered_order.id
                )
                return invoice.id

        first, second = await asyncio.gather(issue(), issue())

        assert first == second
        assert await invoice_numbers(session_factory) == ["INV-2024-0001"]

    async def test_different_orders_get_distinct_numbers(
        self, settings, clock, factory, customer, delivered_order, session_factory
    ) -> None:
        other = await factory.order(customer, "O-101", status=OrderStatus.DELIVERED)

        async def issue(order_id):
            async with session_factory() as session:
                invoice = await InvoiceService(session, settings, clock=clock).issue_for_order(
                    order_id
                )
                return invoice.invoice_number

        numbers = await asyncio.gather(issue(delivered_order.id), issue(other.id))

        assert sorted(numbers) == ["INV-2024-0001", "INV-2024-0002"]


class TestListInvoices:
    async def test_filters(self, invoice_service, factory, customer, delivered_order) -> None:
        other = await factory.order(customer, "O-101", status=OrderStatus.DELIVERED)
        await invoice_service.issue_for_order(delivered_order.id)
        await invoice_service.issue_for_order(other.id)

        assert len(await invoice_service.list_invoices()) == 2
        by_order = await invoice_service.list_invoices(order_id=other.id)
        assert [i.order_id for i in by_order] == [other.id]
        assert await invoice_service.list_invoices(payment_status=InvoicePaymentStatus.PAID) == []

