"""
Database models package initialization.

Models are imported here so they are registered with the Base metadata for
Alembic auto-generation and relationship resolution.
"""

from sandtrack.database.base import Base, BaseModel, TimestampMixin, UUIDMixin
from sandtrack.database.models.delivery import Delivery, DeliveryStatusHistory
from sandtrack.database.models.fleet import Driver, Truck, TruckStatus, TruckType
from sandtrack.database.models.invoice import (
    Invoice,
    InvoicePaymentStatus,
    MasterServiceAgreement,
)
from sandtrack.database.models.order import Customer, Order
from sandtrack.database.models.quality import Certificate, QCStatus, QCTest

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    "Certificate",
    "Customer",
    "Delivery",
    "DeliveryStatusHistory",
    "Driver",
    "Invoice",
    "InvoicePaymentStatus",
    "MasterServiceAgreement",
    "Order",
    "QCStatus",
    "QCTest",
    "Truck",
    "TruckStatus",
    "TruckType",
]
