"""
Invoice issuance service.

Issues the single invoice of a delivered order. Uniqueness of the invoice
number and of the invoiced order is enforced by the store; a lost race is
resolved by returning the winner's invoice or by recomputing the number, a
bounded number of times.
"""

import uuid
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.clock import Clock, utc_now
from sandtrack.core.config import Settings, get_settings
from sandtrack.core.exceptions import (
    ConflictError,
    EntityNotFoundError,
    PreconditionFailedError,
)
from sandtrack.core.logging import get_logger, log_performance
from sandtrack.database.errors import translate_store_error
from sandtrack.database.models.invoice import Invoice, InvoicePaymentStatus
from sandtrack.services.invoices.numbering import (
    compute_due_date,
    next_invoice_number,
    parse_payment_terms,
)
from sandtrack.services.invoices.repository import InvoiceRepository
from sandtrack.services.orders.enums import OrderStatus
from sandtrack.services.orders.repository import OrderRepository

logger = get_logger(__name__)


class InvoiceService:
    """Service issuing invoices for delivered orders."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.clock = clock
        self.invoices = InvoiceRepository(session)
        self.orders = OrderRepository(session)

    async def issue_for_order(
        self,
        order_id: uuid.UUID,
        attachments: Optional[dict[str, Any]] = None,
    ) -> Invoice:
        """
        Issue the invoice of a delivered order, or return the existing one.

        Args:
            order_id: Delivered order to invoice
            attachments: Proof references stored on the invoice

        Returns:
            The order's invoice

        Raises:
            EntityNotFoundError: If the order does not exist
            PreconditionFailedError: If the order is not delivered
            ConflictError: If no free invoice number was found in the
                configured number of attempts
        """
        max_attempts = self.settings.invoice_number_max_attempts
        highest_sequence: Optional[int] = None

        with log_performance(logger, "issue_invoice", order_id=str(order_id)):
            for attempt in range(1, max_attempts + 1):
                try:
                    invoice = await self._issue_once(order_id, highest_sequence, attachments)
                    await self._commit("Failed to issue invoice", order_id=str(order_id))
                    return invoice
                except ConflictError as e:
                    await self.session.rollback()

                    existing = await self.invoices.find_invoice_by_order(order_id)
                    if existing is not None:
                        logger.info(
                            "Invoice issued concurrently, returning existing invoice",
                            order_id=str(order_id),
                            invoice_number=existing.invoice_number,
                        )
                        return existing

                    year = self.clock().year
                    highest_sequence = await self.invoices.max_sequence_for_year(year)
                    logger.warning(
                        "Invoice number collision, recomputing",
                        order_id=str(order_id),
                        attempt=attempt,
                        max_attempts=max_attempts,
                        highest_sequence=highest_sequence,
                        error=e.message,
                    )
                except Exception:
                    await self.session.rollback()
                    raise

        raise ConflictError(
            f"Could not allocate an invoice number after {max_attempts} attempts",
            order_id=str(order_id),
            attempts=max_attempts,
        )

    async def _issue_once(
        self,
        order_id: uuid.UUID,
        highest_sequence: Optional[int],
        attachments: Optional[dict[str, Any]],
    ) -> Invoice:
        order = await self.orders.get_order(order_id)
        if order is None:
            raise EntityNotFoundError("Order", order_id)

        existing = await self.invoices.find_invoice_by_order(order_id)
        if existing is not None:
            return existing

        if order.status != OrderStatus.DELIVERED:
            raise PreconditionFailedError(
                f"Order {order.order_number} cannot be invoiced in status "
                f"{order.status.value}",
                order_id=str(order_id),
                status=order.status.value,
            )

        issue_date = self.clock().date()
        count = await self.invoices.count_invoices_for_year(issue_date.year)
        invoice_number = next_invoice_number(issue_date.year, count, highest_sequence)

        terms_text = await self.invoices.get_msa_payment_terms(order.msa_id)
        terms_days = parse_payment_terms(
            terms_text, default=self.settings.default_payment_terms_days
        )

        total = Decimal(order.total_amount)
        invoice = await self.invoices.create_invoice(
            invoice_number=invoice_number,
            order_id=order.id,
            customer_id=order.customer_id,
            issue_date=issue_date,
            due_date=compute_due_date(issue_date, terms_days),
            line_items=[
                {
                    "description": f"{order.product_name} - {order.order_number}",
                    "quantity": order.quantity_tons,
                    "unit_price": str(order.unit_price),
                    "amount": str(total),
                }
            ],
            subtotal=total,
            tax=Decimal("0.00"),
            total=total,
            payment_status=InvoicePaymentStatus.PENDING,
            days_outstanding=0,
            attachments=attachments or {},
        )

        await self.orders.set_order_status(order_id, OrderStatus.INVOICED)

        logger.info(
            "Invoice issued",
            order_id=str(order_id),
            invoice_number=invoice_number,
            payment_terms_days=terms_days,
            due_date=invoice.due_date.isoformat(),
        )
        return invoice

    async def list_invoices(
        self,
        order_id: Optional[uuid.UUID] = None,
        payment_status: Optional[InvoicePaymentStatus] = None,
    ) -> Sequence[Invoice]:
        return await self.invoices.list_invoices(order_id=order_id, payment_status=payment_status)

    async def _commit(self, message: str, **context: Any) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            raise translate_store_error(e, message, **context) from e
