"""
Location API Endpoints.

Position ingestion for devices and operators; public read endpoints for
commuter apps and dashboards. Read endpoints support conditional requests
(ETag / Last-Modified) for polling clients.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from fastapi.encoders import jsonable_encoder

from tracking_service.app.core.config import settings
from tracking_service.app.core.dependencies import (
    get_cache_service,
    get_eta_estimator,
    get_history_aggregator,
    get_ingest_gateway,
    get_nearby_engine,
    get_store,
    get_vehicle_catalog,
)
from tracking_service.app.core.exceptions import NotFoundError
from tracking_service.app.core.guards import require_role
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.models.enums import UserRole, VehicleStatus
from tracking_service.app.schemas.position import (
    BatchETAItem,
    BatchETARequest,
    ETAResult,
    LocationResponse,
    PositionReportCreate,
    TrailResponse,
    as_utc,
)
from tracking_service.app.services.cache import LIVE_LOCATIONS_KEY, CacheService
from tracking_service.app.services.catalog import SqlVehicleCatalog
from tracking_service.app.services.classifier import utc_now
from tracking_service.app.services.conditional import conditional_response, newest
from tracking_service.app.services.eta import ETAEstimator
from tracking_service.app.services.geo import GeoPoint
from tracking_service.app.services.history import HistoryAggregator
from tracking_service.app.services.ingest import LocationIngestGateway
from tracking_service.app.services.live import collect_live_locations
from tracking_service.app.services.nearby import NearbyVehicleQueryEngine
from tracking_service.app.services.store import GeospatialStore
from tracking_service.app.services.transform import to_latest, to_location, to_nearby

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.post("", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def submit_position(
    report: PositionReportCreate,
    principal: dict = Depends(require_role([UserRole.OPERATOR, UserRole.ADMIN])),
    gateway: LocationIngestGateway = Depends(get_ingest_gateway),
    cache: CacheService = Depends(get_cache_service),
):
    """
    Submit a position report (Operator or Admin).

    Validates:
    - Coordinates, speed, heading, accuracy and timestamp ranges
    - Vehicle exists in the catalog
    - Coordinates lie inside the operating region
    """
    stored = await gateway.submit(report)
    await cache.delete(LIVE_LOCATIONS_KEY)
    return to_location(stored)


@router.get("/live")
async def get_all_live_locations(
    request: Request,
    store: GeospatialStore = Depends(get_store),
    vehicles: SqlVehicleCatalog = Depends(get_vehicle_catalog),
    cache: CacheService = Depends(get_cache_service),
):
    """
    Latest positions of every active vehicle seen in the last 30 minutes.

    Served from a short-lived cache that is dropped on every accepted report.
    """
    snapshot = await cache.get(LIVE_LOCATIONS_KEY)
    if snapshot is None:
        entries = await collect_live_locations(store, vehicles, settings)
        latest = newest(entry.location.timestamp for entry in entries)
        snapshot = {
            "items": jsonable_encoder(entries),
            "last_modified": latest.isoformat() if latest else None,
        }
        await cache.set(LIVE_LOCATIONS_KEY, snapshot, ttl_seconds=settings.live_cache_ttl_seconds)

    last_modified = snapshot["last_modified"]
    return conditional_response(
        request,
        snapshot["items"],
        datetime.fromisoformat(last_modified) if last_modified else None,
    )


@router.get("/nearby")
async def find_nearby_vehicles(
    request: Request,
    lat: float = Query(..., allow_inf_nan=False, description="Search point latitude"),
    lon: float = Query(..., allow_inf_nan=False, description="Search point longitude"),
    radius_km: float = Query(5.0, allow_inf_nan=False, description="Search radius in kilometers"),
    route_id: Optional[str] = Query(None),
    vehicle_status: Optional[VehicleStatus] = Query(None, alias="status"),
    limit: int = Query(50),
    recency_minutes: Optional[int] = Query(None, ge=1),
    engine: NearbyVehicleQueryEngine = Depends(get_nearby_engine),
):
    """
    Vehicles near a point, nearest first, one entry per vehicle.

    Only positions reported in the last recency_minutes (default 10) count.
    """
    now = utc_now()
    found = await engine.find_nearby(
        GeoPoint(lat, lon),
        radius_km,
        recency_minutes=recency_minutes,
        route_id=route_id,
        status=vehicle_status,
        limit=limit,
        now=now,
    )
    return conditional_response(
        request,
        [to_nearby(item, now) for item in found],
        newest(item.report.timestamp for item in found),
    )


@router.get("/estimated-arrival", response_model=ETAResult)
async def estimate_arrival(
    vehicle_id: str = Query(..., min_length=1),
    dest_lat: float = Query(..., allow_inf_nan=False),
    dest_lon: float = Query(..., allow_inf_nan=False),
    estimator: ETAEstimator = Depends(get_eta_estimator),
):
    """Straight-line arrival estimate for one vehicle."""
    return await estimator.estimate_arrival(vehicle_id, GeoPoint(dest_lat, dest_lon))


@router.post("/estimated-arrivals", response_model=List[BatchETAItem])
async def estimate_arrival_batch(
    body: BatchETARequest,
    estimator: ETAEstimator = Depends(get_eta_estimator),
):
    """
    Arrival estimates for several vehicles to one destination.

    A failing vehicle gets an error entry; the rest of the batch still runs.
    """
    return await estimator.estimate_arrival_many(body.vehicle_ids, GeoPoint(body.dest_lat, body.dest_lon))


@router.get("/vehicles/{vehicle_id}")
async def get_latest_position(
    request: Request,
    vehicle_id: str = Path(..., description="Vehicle ID"),
    store: GeospatialStore = Depends(get_store),
    vehicles: SqlVehicleCatalog = Depends(get_vehicle_catalog),
):
    """
    Latest position of one vehicle.

    is_stale is set when the position is older than 30 minutes.
    """
    vehicle = await with_deadline(vehicles.get_vehicle(vehicle_id), None, "get_vehicle")
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_id)

    report = await with_deadline(store.latest_for_vehicle(vehicle_id), None, "latest_for_vehicle")
    payload = to_latest(report, vehicle, settings.latest_stale_minutes)
    return conditional_response(request, payload, report.timestamp)


@router.get("/vehicles/{vehicle_id}/history", response_model=TrailResponse)
async def get_vehicle_history(
    vehicle_id: str = Path(..., description="Vehicle ID"),
    start: Optional[datetime] = Query(None, description="Window start (default: one hour before end)"),
    end: Optional[datetime] = Query(None, description="Window end (default: now)"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum trail points returned"),
    principal: dict = Depends(require_role([UserRole.OPERATOR, UserRole.ADMIN])),
    history: HistoryAggregator = Depends(get_history_aggregator),
):
    """
    Trail of one vehicle for replay, with statistics over the whole window
    (Operator or Admin).
    """
    end = as_utc(end) if end else utc_now()
    start = as_utc(start) if start else end - timedelta(hours=1)

    points = await history.trail(vehicle_id, start, end, limit=limit)
    stats = await history.trail_stats(vehicle_id, start, end)

    return TrailResponse(
        vehicle_id=vehicle_id,
        start=start,
        end=end,
        points=[to_location(point) for point in points],
        stats=stats,
    )
