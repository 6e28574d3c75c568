"""
Fleet Pydantic schemas for the dispatch board.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sandtrack.database.models.fleet import TruckStatus, TruckType


class TruckResponse(BaseModel):
    """Truck as shown on the dispatch board."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    license_plate: str
    capacity_tons: int = Field(..., description="Payload capacity in tons")
    truck_type: TruckType
    status: TruckStatus
    assigned_order_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None


class DriverResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    license_number: Optional[str] = None
    phone: Optional[str] = None
    available: bool
    hours_worked: float
    hours_limit: float
