"""
Invoice and MSA data access repository.
"""

import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.logging import get_logger
from sandtrack.database.errors import translate_store_error
from sandtrack.database.models.invoice import (
    Invoice,
    InvoicePaymentStatus,
    MasterServiceAgreement,
)
from sandtrack.services.invoices.numbering import (
    invoice_number_prefix,
    parse_invoice_sequence,
)

logger = get_logger(__name__)


class InvoiceRepository:
    """Repository for invoices and the MSA payment terms they depend on."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_invoices_for_year(self, year: int) -> int:
        stmt = select(func.count(Invoice.id)).where(
            Invoice.invoice_number.startswith(invoice_number_prefix(year), autoescape=True)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to count invoices", year=year) from e
        return result.scalar_one()

    async def max_sequence_for_year(self, year: int) -> int:
        """Return the highest sequence issued in year, or 0."""
        stmt = select(Invoice.invoice_number).where(
            Invoice.invoice_number.startswith(invoice_number_prefix(year), autoescape=True)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to read invoice numbers", year=year) from e

        sequences = [parse_invoice_sequence(number) for number in result.scalars()]
        return max((s for s in sequences if s is not None), default=0)

    async def find_invoice_by_order(self, order_id: uuid.UUID) -> Optional[Invoice]:
        stmt = select(Invoice).where(Invoice.order_id == order_id)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(
                e, "Failed to look up invoice", order_id=str(order_id)
            ) from e
        return result.scalars().first()

    async def create_invoice(self, **fields: Any) -> Invoice:
        """
        Create and flush an invoice.

        Raises:
            ConflictError: If the number or the order is already invoiced
        """
        invoice = Invoice(**fields)
        self.session.add(invoice)

        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise translate_store_error(
                e,
                "Failed to create invoice",
                invoice_number=fields.get("invoice_number"),
                order_id=str(fields.get("order_id")),
            ) from e

        logger.info(
            "Invoice created",
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            order_id=str(invoice.order_id),
        )
        return invoice

    async def list_invoices(
        self,
        order_id: Optional[uuid.UUID] = None,
        payment_status: Optional[InvoicePaymentStatus] = None,
    ) -> Sequence[Invoice]:
        stmt = select(Invoice).order_by(Invoice.invoice_number.desc())
        if order_id is not None:
            stmt = stmt.where(Invoice.order_id == order_id)
        if payment_status is not None:
            stmt = stmt.where(Invoice.payment_status == payment_status)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to list invoices") from e
        return result.scalars().all()

    async def get_msa_payment_terms(self, msa_id: Optional[uuid.UUID]) -> Optional[str]:
        """Return the free-text payment terms of an MSA, if any."""
        if msa_id is None:
            return None
        try:
            msa = await self.session.get(MasterServiceAgreement, msa_id)
        except SQLAlchemyError as e:
            raise translate_store_error(e, "Failed to load MSA", msa_id=str(msa_id)) from e
        return msa.payment_terms if msa is not None else None
