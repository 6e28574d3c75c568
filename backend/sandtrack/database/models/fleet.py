"""
Fleet models: trucks and drivers.

Availability lives on the rows themselves (truck status, driver available
flag). Both tables carry an optimistic version counter so two dispatchers
racing for the same resource cannot both win.
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Float, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sandtrack.database.base import (
    BaseModel,
    create_table_args,
    enum_column_type,
    version_column,
)


class TruckStatus(str, Enum):
    """
    Truck operating status.

    The delivery lifecycle writes only AVAILABLE and ASSIGNED; the other
    values are maintained by fleet operations.
    """

    AVAILABLE = "available"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    LOADING = "loading"
    DELIVERING = "delivering"
    RETURNING = "returning"
    MAINTENANCE = "maintenance"


class TruckType(str, Enum):
    OLD = "old"
    NEW = "new"


class Driver(BaseModel):
    """Truck driver with availability and hours-of-service counters."""

    __tablename__ = "drivers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    license_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        unique=True,
        comment="Commercial driving licence number",
    )

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Whether the driver can take a new delivery",
    )

    hours_worked: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Hours driven in the current period",
    )

    hours_limit: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=12.0,
        comment="Maximum hours allowed in the current period",
    )

    version: Mapped[int] = version_column()

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = create_table_args(
        CheckConstraint("hours_worked >= 0", name="ck_drivers_hours_worked_non_negative"),
        CheckConstraint("hours_limit >= 0", name="ck_drivers_hours_limit_non_negative"),
        comment="Truck drivers",
    )

    @property
    def has_hours_remaining(self) -> bool:
        return self.hours_worked < self.hours_limit


class Truck(BaseModel):
    """
    Sand hauling truck.

    Attributes:
        license_plate: Registration plate, unique across the fleet
        capacity_tons: Payload capacity
        truck_type: Fleet generation
        status: Operating status
        assigned_order_id: Order the truck is currently dispatched on
        driver_id: Driver currently paired with the truck
    """

    __tablename__ = "trucks"

    license_plate: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        comment="Registration plate",
    )

    capacity_tons: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=30,
        comment="Payload capacity in tons",
    )

    truck_type: Mapped[TruckType] = mapped_column(
        enum_column_type(TruckType, "truck_type"),
        nullable=False,
        default=TruckType.NEW,
    )

    status: Mapped[TruckStatus] = mapped_column(
        enum_column_type(TruckStatus, "truck_status"),
        nullable=False,
        default=TruckStatus.AVAILABLE,
        comment="Current operating status",
    )

    assigned_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        comment="Order the truck is dispatched on",
    )

    driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("drivers.id", ondelete="SET NULL"),
        nullable=True,
        comment="Driver paired with the truck",
    )

    version: Mapped[int] = version_column()

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = create_table_args(
        Index("ix_trucks_status", "status"),
        CheckConstraint("capacity_tons > 0", name="ck_trucks_capacity_positive"),
        comment="Fleet trucks",
    )

    @property
    def is_available(self) -> bool:
        return self.status is TruckStatus.AVAILABLE
