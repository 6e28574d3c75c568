"""Checkpoint and GPS trail synthesis.

Until vehicle hardware feeds real positions, proof of custody is produced at
confirmation time: a fixed number of auto-detected checkpoints spaced at a
regular interval before the confirmation instant, starting at the quarry and
ending at the well site. The strategy that places the intermediate points is
injectable so a hardware-backed trail can replace it later.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sandtrack.core.config import Settings
from sandtrack.core.logging import get_logger

logger = get_logger(__name__)

MAX_CHECKPOINTS = 12


class CheckpointType(str, Enum):
    TRUCK_ASSIGNED = "truck_assigned"
    LOAD_START = "load_start"
    LOAD_COMPLETE = "load_complete"
    QUARRY_EXIT = "quarry_exit"
    ROUTE = "route"
    BUFFER_ARRIVAL = "buffer_arrival"
    BUFFER_EXIT = "buffer_exit"
    WELL_ARRIVAL = "well_arrival"
    WAIT_START = "wait_start"
    UNLOAD_START = "unload_start"
    UNLOAD_COMPLETE = "unload_complete"
    SIGNATURE_CAPTURED = "signature_captured"
    WELL_EXIT = "well_exit"


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RoutePoint(Location):
    name: str = ""


class Route(BaseModel):
    """Quarry to well-site leg of a delivery."""

    model_config = ConfigDict(frozen=True)

    quarry: RoutePoint
    well: RoutePoint

    @classmethod
    def for_order(cls, order, settings: Settings) -> "Route":
        """
        Build the route of an order, falling back to the configured
        default quarry and well site for missing coordinates.
        """
        quarry = RoutePoint(
            name=order.quarry_name or settings.default_quarry_name,
            lat=_coalesce(order.quarry_lat, settings.default_quarry_lat),
            lng=_coalesce(order.quarry_lng, settings.default_quarry_lng),
        )
        well = RoutePoint(
            name=order.well_name or order.delivery_location or settings.default_well_name,
            lat=_coalesce(order.well_lat, settings.default_well_lat),
            lng=_coalesce(order.well_lng, settings.default_well_lng),
        )
        return cls(quarry=quarry, well=well)


class Checkpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, le=MAX_CHECKPOINTS)
    name: str
    type: CheckpointType
    timestamp: datetime
    lat: float
    lng: float
    auto_detected: bool = True


class GpsPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    timestamp: datetime
    speed: Optional[float] = None


class Trail(BaseModel):
    """Checkpoints plus the matching GPS track."""

    model_config = ConfigDict(frozen=True)

    checkpoints: tuple[Checkpoint, ...]
    gps_track: tuple[GpsPoint, ...]


def _coalesce(value: Optional[float], default: float) -> float:
    return default if value is None else value


def checkpoint_names(count: int) -> list[str]:
    """
    Names for a trail of count checkpoints.

    >>> checkpoint_names(4)
    ['Quarry Exit', 'Highway Entry', 'Well Site Entry', 'Well Site Arrival']
    """
    if count < 2:
        raise ValueError("A trail needs at least two checkpoints")
    if count == 2:
        return ["Quarry Exit", "Well Site Arrival"]
    if count == 3:
        return ["Quarry Exit", "Checkpoint 1", "Well Site Arrival"]
    middle = [f"Checkpoint {n}" for n in range(1, count - 3)]
    return ["Quarry Exit", "Highway Entry", *middle, "Well Site Entry", "Well Site Arrival"]


class CheckpointTrailStrategy(ABC):
    """
    Base trail strategy.

    Subclasses decide where each checkpoint lies; timing, naming and typing
    are shared.
    """

    def __init__(self, count: int = MAX_CHECKPOINTS, interval_minutes: int = 10):
        if not 2 <= count <= MAX_CHECKPOINTS:
            raise ValueError(
                f"Checkpoint count must be between 2 and {MAX_CHECKPOINTS}, got {count}"
            )
        if interval_minutes < 1:
            raise ValueError("Checkpoint interval must be at least one minute")
        self.count = count
        self.interval = timedelta(minutes=interval_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CheckpointTrailStrategy":
        return cls(
            count=settings.checkpoint_count,
            interval_minutes=settings.checkpoint_interval_minutes,
        )

    @abstractmethod
    def position(self, route: Route, index: int) -> Location:
        """Location of the intermediate checkpoint at index."""

    def build(self, route: Route, now: datetime) -> Trail:
        """
        Build the trail ending one interval before now.

        Args:
            route: Quarry and well-site endpoints
            now: Confirmation instant

        Returns:
            Trail whose first checkpoint is the quarry and last the well site
        """
        names = checkpoint_names(self.count)
        checkpoints = []
        for index, name in enumerate(names):
            if index == 0:
                location: Location = route.quarry
                kind = CheckpointType.QUARRY_EXIT
            elif index == self.count - 1:
                location = route.well
                kind = CheckpointType.WELL_ARRIVAL
            else:
                location = self.position(route, index)
                kind = CheckpointType.ROUTE

            checkpoints.append(
                Checkpoint(
                    id=index + 1,
                    name=name,
                    type=kind,
                    timestamp=now - self.interval * (self.count - index),
                    lat=location.lat,
                    lng=location.lng,
                    auto_detected=True,
                )
            )

        gps_track = tuple(
            GpsPoint(lat=cp.lat, lng=cp.lng, timestamp=cp.timestamp)
            for cp in checkpoints
        )

        logger.debug(
            "Checkpoint trail built",
            strategy=type(self).__name__,
            checkpoint_count=len(checkpoints),
        )

        return Trail(checkpoints=tuple(checkpoints), gps_track=gps_track)


class LinearRouteTrail(CheckpointTrailStrategy):
    """Places intermediate checkpoints evenly on the straight quarry to well line."""

    def position(self, route: Route, index: int) -> Location:
        fraction = index / (self.count - 1)
        return Location(
            lat=round(route.quarry.lat + (route.well.lat - route.quarry.lat) * fraction, 6),
            lng=round(route.quarry.lng + (route.well.lng - route.quarry.lng) * fraction, 6),
        )
