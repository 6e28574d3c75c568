"""
Quality control models.

QC tests and certificates are produced by the laboratory process. The
delivery lifecycle only reads them, and stamps the dispatched truck onto the
passing test and its certificate.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sandtrack.database.base import BaseModel, create_table_args, enum_column_type


class QCStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"


class Certificate(BaseModel):
    """Quality certificate issued for a sand lot."""

    __tablename__ = "certificates"

    certificate_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    lot_number: Mapped[str] = mapped_column(String(50), nullable=False)

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    truck_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("trucks.id", ondelete="SET NULL"),
        nullable=True,
    )

    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    test_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = create_table_args(comment="Quality certificates")


class QCTest(BaseModel):
    """
    Laboratory test of a sand lot.

    An order "has a passing certificate" when one of its tests is PASSED and
    references a certificate.
    """

    __tablename__ = "qc_tests"

    lot_number: Mapped[str] = mapped_column(String(50), nullable=False)

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[QCStatus] = mapped_column(
        enum_column_type(QCStatus, "qc_status"),
        nullable=False,
        default=QCStatus.PENDING,
    )

    certificate_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("certificates.id", ondelete="SET NULL"),
        nullable=True,
    )

    truck_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("trucks.id", ondelete="SET NULL"),
        nullable=True,
        comment="Truck that hauled the tested lot",
    )

    __table_args__ = create_table_args(
        Index("ix_qc_tests_order_status", "order_id", "status"),
        comment="Quality control tests",
    )

    @property
    def is_passing_certificate(self) -> bool:
        return self.status is QCStatus.PASSED and self.certificate_id is not None
