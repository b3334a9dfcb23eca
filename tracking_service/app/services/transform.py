"""
Response builders.

Turns store snapshots and engine results into API response models. Relative
fields (last_updated, is_stale) are computed here against the evaluation
time and are never stored.
"""

from datetime import datetime
from typing import Optional

from tracking_service.app.schemas.position import (
    LatestLocationResponse,
    LiveLocationResponse,
    LocationResponse,
    NearbyVehicleResponse,
    StoredReport,
    VehicleSummary,
)
from tracking_service.app.services.classifier import heading_to_compass, human_age, is_stale
from tracking_service.app.services.geo import round_half_up
from tracking_service.app.services.nearby import NearbyVehicle

KMH_TO_MPH = 0.621371


def speed_mph(speed_kmh: float) -> float:
    return round_half_up(speed_kmh * KMH_TO_MPH * 10) / 10


def _location_fields(report: StoredReport) -> dict:
    return dict(
        id=report.id,
        vehicle_id=report.vehicle_id,
        route_id=report.route_id,
        latitude=report.latitude,
        longitude=report.longitude,
        speed=report.speed,
        speed_mph=speed_mph(report.speed),
        heading=report.heading,
        heading_direction=heading_to_compass(report.heading),
        accuracy=report.accuracy,
        altitude=report.altitude,
        source=report.source,
        is_moving=report.is_moving,
        timestamp=report.timestamp,
    )


def to_location(report: StoredReport) -> LocationResponse:
    return LocationResponse(**_location_fields(report))


def to_latest(
    report: StoredReport,
    vehicle: Optional[VehicleSummary],
    stale_minutes: float,
    now: Optional[datetime] = None,
) -> LatestLocationResponse:
    return LatestLocationResponse(
        **_location_fields(report),
        vehicle=vehicle,
        is_stale=is_stale(report, stale_minutes, now),
        last_updated=human_age(report.timestamp, now),
    )


def to_nearby(item: NearbyVehicle, now: Optional[datetime] = None) -> NearbyVehicleResponse:
    return NearbyVehicleResponse(
        vehicle=item.vehicle,
        route=item.route,
        location=to_location(item.report),
        distance_km=round(item.distance_km, 2),
        last_updated=human_age(item.report.timestamp, now),
    )


def to_live(
    report: StoredReport,
    vehicle: VehicleSummary,
    stale_minutes: float,
    now: Optional[datetime] = None,
) -> LiveLocationResponse:
    return LiveLocationResponse(
        vehicle=vehicle,
        location=to_location(report),
        last_updated=human_age(report.timestamp, now),
        is_stale=is_stale(report, stale_minutes, now),
    )
