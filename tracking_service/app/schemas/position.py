"""
Position tracking schemas.

Request bodies, immutable store snapshots, and response shapes for the
location endpoints.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from tracking_service.app.models.enums import PositionSource, VehicleStatus


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PositionReportCreate(BaseModel):
    """
    Raw position report as submitted by a device or an operator.

    Ranges are checked by the ingest gateway and the store so that every
    caller gets the same ValidationError, not only HTTP callers.
    """
    vehicle_id: str = Field(..., min_length=1, max_length=64)
    latitude: float
    longitude: float
    speed: float = 0.0  # km/h
    heading: float = 0.0
    accuracy: float = 10.0  # meters
    altitude: Optional[float] = None
    timestamp: datetime
    source: PositionSource = PositionSource.DEVICE_REPORTED
    route_id: Optional[str] = Field(None, max_length=64)


class StoredReport(BaseModel):
    """Read snapshot of a stored position report."""
    id: int
    vehicle_id: str
    route_id: Optional[str]
    latitude: float
    longitude: float
    speed: float
    heading: float
    accuracy: float
    altitude: Optional[float]
    source: PositionSource
    is_moving: bool
    timestamp: datetime
    created_at: Optional[datetime] = None

    @field_validator("timestamp", "created_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    class Config:
        from_attributes = True
        frozen = True


class VehicleSummary(BaseModel):
    """Vehicle catalog entry joined onto query results."""
    id: str
    registration_number: str
    capacity: int
    status: VehicleStatus
    model: Optional[str] = None

    class Config:
        from_attributes = True


class RouteSummary(BaseModel):
    """Route catalog entry joined onto query results."""
    id: str
    name: str
    route_number: str
    origin: str
    destination: str

    class Config:
        from_attributes = True


class LocationResponse(BaseModel):
    """A position report as returned to clients."""
    id: int
    vehicle_id: str
    route_id: Optional[str]
    latitude: float
    longitude: float
    speed: float
    speed_mph: float
    heading: float
    heading_direction: str
    accuracy: float
    altitude: Optional[float]
    source: PositionSource
    is_moving: bool
    timestamp: datetime


class LatestLocationResponse(LocationResponse):
    """Latest position of one vehicle."""
    vehicle: Optional[VehicleSummary] = None
    is_stale: bool
    last_updated: str


class NearbyVehicleResponse(BaseModel):
    """One vehicle found by a proximity search."""
    vehicle: VehicleSummary
    route: Optional[RouteSummary] = None
    location: LocationResponse
    distance_km: float
    last_updated: str


class LiveLocationResponse(BaseModel):
    """One vehicle on the live map."""
    vehicle: VehicleSummary
    location: LocationResponse
    last_updated: str
    is_stale: bool


class ETAResult(BaseModel):
    """Arrival estimate for one vehicle."""
    distance_km: float
    estimated_minutes: Optional[int] = None
    message: Optional[str] = None
    last_updated: Optional[str] = None


class BatchETARequest(BaseModel):
    """Arrival estimates for several vehicles to one destination."""
    vehicle_ids: List[str]
    dest_lat: float
    dest_lon: float


class BatchETAItem(BaseModel):
    """Per-vehicle batch entry: either a result or an error message."""
    vehicle_id: str
    result: Optional[ETAResult] = None
    error: Optional[str] = None


class TrailStats(BaseModel):
    """Distance and speed statistics over a vehicle trail."""
    total_points: int = 0
    total_distance_km: float = 0.0
    average_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    duration_minutes: int = 0


class TrailResponse(BaseModel):
    """Ordered trail points for replay plus statistics over the whole window."""
    vehicle_id: str
    start: datetime
    end: datetime
    points: List[LocationResponse]
    stats: TrailStats
