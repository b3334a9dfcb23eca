"""
ETA Estimator.

Straight-line arrival estimates from a vehicle's latest position and its
reported speed. No road network, no traffic model.
"""

import logging
from datetime import datetime
from typing import List, Optional

from tracking_service.app.core.config import Settings, settings as default_settings
from tracking_service.app.core.exceptions import AppException, DeadlineExceededError, ValidationError
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.schemas.position import BatchETAItem, ETAResult
from tracking_service.app.services.classifier import human_age
from tracking_service.app.services.geo import GeoPoint, distance_between, round_half_up, validate_point
from tracking_service.app.services.store import GeospatialStore

logger = logging.getLogger(__name__)

NOT_MOVING_MESSAGE = "vehicle not moving"


class ETAEstimator:
    """Arrival estimates for one vehicle or a batch of vehicles."""

    def __init__(self, store: GeospatialStore, config: Settings = default_settings):
        self.store = store
        self.config = config

    async def estimate_arrival(
        self,
        vehicle_id: str,
        destination: GeoPoint,
        deadline: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> ETAResult:
        """
        Estimate minutes until vehicle_id reaches destination.

        Raises:
            ValidationError: Destination out of range
            NotFoundError: Vehicle has no stored position
            DeadlineExceededError: Store lookup outlived the deadline
        """
        destination = validate_point(destination.latitude, destination.longitude, "destination")
        return await self._estimate(vehicle_id, destination, deadline, now)

    async def _estimate(
        self,
        vehicle_id: str,
        destination: GeoPoint,
        deadline: Optional[float],
        now: Optional[datetime],
    ) -> ETAResult:
        report = await with_deadline(
            self.store.latest_for_vehicle(vehicle_id), deadline, "estimate_arrival"
        )

        distance_km = distance_between(GeoPoint(report.latitude, report.longitude), destination)
        last_updated = human_age(report.timestamp, now)

        if not report.is_moving or report.speed <= 0:
            return ETAResult(
                distance_km=round(distance_km, 2),
                estimated_minutes=None,
                message=NOT_MOVING_MESSAGE,
                last_updated=last_updated,
            )

        return ETAResult(
            distance_km=round(distance_km, 2),
            estimated_minutes=round_half_up(distance_km / report.speed * 60),
            last_updated=last_updated,
        )

    async def estimate_arrival_many(
        self,
        vehicle_ids: List[str],
        destination: GeoPoint,
        deadline: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> List[BatchETAItem]:
        """
        Estimate arrival for several vehicles to one destination.

        Each vehicle is evaluated on its own with its own deadline. A failure
        for one vehicle is reported in that item's error field and never
        aborts the batch.

        Raises:
            ValidationError: Destination out of range or batch too large
        """
        destination = validate_point(destination.latitude, destination.longitude, "destination")
        if len(vehicle_ids) > self.config.max_batch_size:
            raise ValidationError(
                f"At most {self.config.max_batch_size} vehicles per batch",
                details={"count": len(vehicle_ids)},
            )

        # Sequential: the vehicles share one database session
        items = []
        for vehicle_id in vehicle_ids:
            try:
                result = await self._estimate(vehicle_id, destination, deadline, now)
                items.append(BatchETAItem(vehicle_id=vehicle_id, result=result))
            except AppException as exc:
                if isinstance(exc, DeadlineExceededError):
                    # The cancelled query may have left the shared session mid-operation
                    await self.store.rollback()
                logger.info(
                    "Batch ETA item failed",
                    extra={"vehicle_id": vehicle_id, "error_code": exc.error_code},
                )
                items.append(BatchETAItem(vehicle_id=vehicle_id, error=exc.message))
        return items
