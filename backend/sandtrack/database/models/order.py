"""
Order and customer models.

An order is a purchase of certified sand for one well site. It carries the
route endpoints used to synthesize the delivery trail, the amount that ends
up on the invoice and a reference to the customer's master service
agreement.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sandtrack.database.base import (
    BaseModel,
    create_table_args,
    enum_column_type,
    version_column,
)
from sandtrack.services.orders.enums import OrderStatus


class Customer(BaseModel):
    """Customer buying sand for its well sites."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Customer legal name",
    )

    __table_args__ = create_table_args(comment="Customers")


class Order(BaseModel):
    """
    Sand order moving through dispatch, delivery and invoicing.

    Attributes:
        order_number: Human-readable order number (e.g. O-100)
        customer_id: Customer placing the order
        status: Current order status
        delivery_location: Free-text well-site location
        total_amount: Order total, invoiced as-is
        msa_id: Master service agreement governing payment terms
        quarry_*: Route origin; defaults apply when unset
        well_*: Route destination; defaults apply when unset
        version: Optimistic lock counter
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Human-readable order number",
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Customer who placed the order",
    )

    status: Mapped[OrderStatus] = mapped_column(
        enum_column_type(OrderStatus, "order_status"),
        nullable=False,
        default=OrderStatus.DRAFT,
        index=True,
        comment="Current order status",
    )

    delivery_location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        comment="Well-site delivery location",
    )

    product_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="Frac sand",
        comment="Product ordered",
    )

    quantity_tons: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Ordered quantity in tons",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Price per ton",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Order total",
    )

    msa_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("master_service_agreements.id", ondelete="SET NULL"),
        nullable=True,
        comment="Governing master service agreement",
    )

    quarry_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quarry_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    quarry_lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    well_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    well_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    well_lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    version: Mapped[int] = version_column()

    customer: Mapped[Customer] = relationship(
        "Customer",
        foreign_keys=[customer_id],
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = create_table_args(
        Index("ix_orders_status_created", "status", "created_at"),
        CheckConstraint(
            "total_amount >= 0",
            name="ck_orders_total_amount_non_negative",
        ),
        CheckConstraint(
            "quantity_tons >= 0",
            name="ck_orders_quantity_non_negative",
        ),
        comment="Sand orders",
    )

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, order_number={self.order_number}, "
            f"status={self.status})>"
        )
