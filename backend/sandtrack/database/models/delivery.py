"""
Delivery and delivery status history models.

A delivery is one truckload hauling an order from the quarry to the well
site. Its evidence of custody (checkpoints, GPS track and the signed proof
of delivery) is stored as JSON documents on the row. Deliveries are never
deleted.

While a delivery is active its truck and driver are exclusively held: the
partial unique indexes on ``truck_id`` and ``driver_id`` reject a second
active delivery for either resource.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sandtrack.database.base import (
    BaseModel,
    JSONType,
    create_table_args,
    enum_column_type,
    version_column,
)
from sandtrack.database.models.fleet import Driver, Truck
from sandtrack.database.models.order import Order
from sandtrack.services.deliveries.enums import DeliveryStatus

_ACTIVE_DELIVERY = text("status <> 'delivered'")


class Delivery(BaseModel):
    """
    Delivery of an order by one truck and driver.

    Attributes:
        order_id: Order being delivered
        truck_id: Truck hauling the load
        driver_id: Driver of the truck
        status: Lifecycle status
        estimated_arrival: Arrival estimate set on assignment
        actual_arrival: Arrival recorded by tracking or on confirmation
        wait_time_minutes: Minutes between arrival and proof of delivery
        checkpoints: Ordered checkpoint documents (at most 12)
        gps_track: GPS points, one per checkpoint
        signature: Proof of delivery document
        version: Optimistic lock counter
    """

    __tablename__ = "deliveries"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    truck_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("trucks.id", ondelete="RESTRICT"),
        nullable=False,
    )

    driver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("drivers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    status: Mapped[DeliveryStatus] = mapped_column(
        enum_column_type(DeliveryStatus, "delivery_status"),
        nullable=False,
        default=DeliveryStatus.ASSIGNED,
        comment="Lifecycle status",
    )

    estimated_arrival: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    actual_arrival: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    wait_time_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    checkpoints: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="Checkpoint documents ordered by timestamp",
    )

    gps_track: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="GPS points, one per checkpoint",
    )

    signature: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Proof of delivery",
    )

    version: Mapped[int] = version_column()

    order: Mapped[Order] = relationship(
        "Order",
        foreign_keys=[order_id],
        lazy="selectin",
    )

    truck: Mapped[Truck] = relationship(
        "Truck",
        foreign_keys=[truck_id],
        lazy="selectin",
    )

    driver: Mapped[Driver] = relationship(
        "Driver",
        foreign_keys=[driver_id],
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = create_table_args(
        Index(
            "uq_deliveries_active_truck",
            "truck_id",
            unique=True,
            postgresql_where=_ACTIVE_DELIVERY,
            sqlite_where=_ACTIVE_DELIVERY,
        ),
        Index(
            "uq_deliveries_active_driver",
            "driver_id",
            unique=True,
            postgresql_where=_ACTIVE_DELIVERY,
            sqlite_where=_ACTIVE_DELIVERY,
        ),
        Index("ix_deliveries_status_created", "status", "created_at"),
        CheckConstraint(
            "wait_time_minutes >= 0",
            name="ck_deliveries_wait_time_non_negative",
        ),
        comment="Sand deliveries",
    )

    def __repr__(self) -> str:
        return f"<Delivery(id={self.id}, status={self.status})>"


class DeliveryStatusHistory(BaseModel):
    """Append-only audit row written on every delivery status change."""

    __tablename__ = "delivery_status_history"

    delivery_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("deliveries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    from_status: Mapped[Optional[DeliveryStatus]] = mapped_column(
        enum_column_type(DeliveryStatus, "delivery_status"),
        nullable=True,
        comment="Previous status, empty for the assignment row",
    )

    to_status: Mapped[DeliveryStatus] = mapped_column(
        enum_column_type(DeliveryStatus, "delivery_status"),
        nullable=False,
    )

    change_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    change_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )

    __table_args__ = create_table_args(comment="Delivery status audit trail")
