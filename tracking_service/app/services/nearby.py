"""
Nearest-Vehicle Query Engine.

Answers "which vehicles are near this point" with one entry per vehicle,
joined with catalog data and sorted by distance.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from tracking_service.app.core.config import Settings, settings as default_settings
from tracking_service.app.core.exceptions import ValidationError
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.models.enums import VehicleStatus
from tracking_service.app.schemas.position import RouteSummary, StoredReport, VehicleSummary
from tracking_service.app.services.catalog import RouteCatalog, VehicleCatalog
from tracking_service.app.services.geo import GeoPoint, validate_point
from tracking_service.app.services.store import GeospatialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NearbyVehicle:
    report: StoredReport
    vehicle: VehicleSummary
    route: Optional[RouteSummary]
    distance_km: float


class NearbyVehicleQueryEngine:
    """Proximity search over the latest positions of all vehicles."""

    def __init__(
        self,
        store: GeospatialStore,
        vehicles: VehicleCatalog,
        routes: RouteCatalog,
        config: Settings = default_settings,
    ):
        self.store = store
        self.vehicles = vehicles
        self.routes = routes
        self.config = config

    def _validate(self, point: GeoPoint, radius_km: float, limit: int) -> GeoPoint:
        point = validate_point(point.latitude, point.longitude, "search")

        if radius_km is None or not 0 < radius_km <= self.config.max_nearby_radius_km:
            raise ValidationError(
                f"Radius must be greater than 0 and at most {self.config.max_nearby_radius_km} km",
                details={"radius_km": radius_km},
            )

        if not 1 <= limit <= self.config.max_nearby_limit:
            raise ValidationError(
                f"Limit must be between 1 and {self.config.max_nearby_limit}",
                details={"limit": limit},
            )
        return point

    async def find_nearby(
        self,
        point: GeoPoint,
        radius_km: float,
        recency_minutes: Optional[int] = None,
        route_id: Optional[str] = None,
        status: Optional[VehicleStatus] = None,
        limit: int = 50,
        deadline: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> List[NearbyVehicle]:
        """
        Vehicles whose latest recent position lies within radius_km of point.

        Raises:
            ValidationError: Bad point, radius or limit (checked before any store access)
            DeadlineExceededError: Store or catalog calls outlived the deadline
        """
        point = self._validate(point, radius_km, limit)
        if recency_minutes is None:
            recency_minutes = self.config.nearby_recency_minutes

        return await with_deadline(
            self._search(point, radius_km, recency_minutes, route_id, status, limit, now),
            deadline,
            "find_nearby",
        )

    async def _search(
        self,
        point: GeoPoint,
        radius_km: float,
        recency_minutes: int,
        route_id: Optional[str],
        status: Optional[VehicleStatus],
        limit: int,
        now: Optional[datetime],
    ) -> List[NearbyVehicle]:
        # Catalog join and filters drop candidates, so truncate only after them
        candidates = await self.store.nearby(
            point,
            radius_km,
            timedelta(minutes=recency_minutes),
            limit=None,
            now=now,
        )

        results = []
        for report, distance in candidates:
            vehicle = await self.vehicles.get_vehicle(report.vehicle_id)
            if vehicle is None:
                # Removed from the catalog after the report was stored
                logger.debug("Skipping uncatalogued vehicle", extra={"vehicle_id": report.vehicle_id})
                continue

            if status is not None and vehicle.status != status:
                continue
            if route_id is not None and report.route_id != route_id:
                continue

            route = await self.routes.get_route(report.route_id) if report.route_id else None
            results.append(NearbyVehicle(report=report, vehicle=vehicle, route=route, distance_km=distance))

        results.sort(key=lambda item: item.distance_km)
        return results[:limit]
