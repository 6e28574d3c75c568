"""
Invoice and master service agreement models.

Invoice numbers are unique and scoped by year (``INV-2024-0001``); an order
can be invoiced at most once. Both rules are enforced by unique constraints
so concurrent issuers cannot produce duplicates.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from sandtrack.database.base import (
    BaseModel,
    JSONType,
    create_table_args,
    enum_column_type,
)


class InvoicePaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PARTIAL = "partial"


class MasterServiceAgreement(BaseModel):
    """Customer contract carrying free-text payment terms (e.g. "Net 45")."""

    __tablename__ = "master_service_agreements"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    payment_terms: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Free-text payment terms",
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = create_table_args(comment="Master service agreements")


class Invoice(BaseModel):
    """
    Invoice issued for a delivered order.

    Attributes:
        invoice_number: Year-scoped sequential number
        order_id: Invoiced order (unique)
        customer_id: Billed customer
        issue_date / due_date: Due date follows the MSA payment terms
        line_items: Billed lines
        subtotal / tax / total: Amounts; tax is not applied
        payment_status: Collection status
        days_outstanding: Days since issue while unpaid
        attachments: Certificate number, signature flag and report filename
    """

    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        comment="Year-scoped invoice number",
    )

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    line_items: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )

    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    total: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    payment_status: Mapped[InvoicePaymentStatus] = mapped_column(
        enum_column_type(InvoicePaymentStatus, "invoice_payment_status"),
        nullable=False,
        default=InvoicePaymentStatus.PENDING,
    )

    paid_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    days_outstanding: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    attachments: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )

    __table_args__ = create_table_args(
        Index("ix_invoices_payment_status", "payment_status"),
        CheckConstraint("total >= 0", name="ck_invoices_total_non_negative"),
        CheckConstraint("due_date >= issue_date", name="ck_invoices_due_after_issue"),
        comment="Customer invoices",
    )

    def __repr__(self) -> str:
        return f"<Invoice(invoice_number={self.invoice_number}, order_id={self.order_id})>"
