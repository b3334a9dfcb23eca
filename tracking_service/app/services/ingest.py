"""
Location Ingest Gateway.

Entry point for position reports. A report is checked in a fixed order:
field ranges first (no I/O), then the vehicle catalog, then the operating
region, and only then written. Out-of-range coordinates are therefore always
a ValidationError, never an OutOfRegionError.

Submissions are not idempotent: the same report sent twice is stored twice.
"""

import logging
from datetime import datetime
from typing import Optional

from tracking_service.app.core.config import Settings, settings as default_settings
from tracking_service.app.core.exceptions import AppException, NotFoundError, OutOfRegionError
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.schemas.position import PositionReportCreate, StoredReport
from tracking_service.app.services.catalog import VehicleCatalog
from tracking_service.app.services.geo import OperatingRegion
from tracking_service.app.services.store import GeospatialStore, validate_report

logger = logging.getLogger(__name__)


class LocationIngestGateway:
    """Validates and persists incoming position reports."""

    def __init__(
        self,
        store: GeospatialStore,
        vehicles: VehicleCatalog,
        region: OperatingRegion,
        config: Settings = default_settings,
    ):
        self.store = store
        self.vehicles = vehicles
        self.region = region
        self.config = config

    async def submit(
        self,
        raw: PositionReportCreate,
        deadline: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> StoredReport:
        """
        Accept one position report.

        Args:
            raw: Report as received from the device or operator
            deadline: Seconds allowed for the catalog lookup and write
            now: Evaluation time for timestamp bounds (defaults to current UTC)

        Returns:
            Stored snapshot carrying the generated id and derived is_moving

        Raises:
            ValidationError: Malformed fields
            NotFoundError: Unknown vehicle
            OutOfRegionError: Coordinates outside the operating region
            DeadlineExceededError: Deadline passed before the write finished
            StorageFault: Persistence failure
        """
        try:
            validate_report(raw, self.config, now)
            stored = await with_deadline(self._accept(raw, now), deadline, "submit_position")
        except AppException as exc:
            logger.info(
                "Position report rejected",
                extra={"vehicle_id": raw.vehicle_id, "error_code": exc.error_code},
            )
            raise

        logger.info(
            "Position report accepted",
            extra={"vehicle_id": stored.vehicle_id, "report_id": stored.id, "is_moving": stored.is_moving},
        )
        return stored

    async def _accept(self, raw: PositionReportCreate, now: Optional[datetime]) -> StoredReport:
        vehicle = await self.vehicles.get_vehicle(raw.vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", raw.vehicle_id)

        if not self.region.contains(raw.latitude, raw.longitude):
            raise OutOfRegionError(raw.latitude, raw.longitude)

        return await self.store.insert(raw, now=now)
