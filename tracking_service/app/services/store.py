"""
Geospatial Store.

Owns persistence of position reports. Reads return immutable StoredReport
snapshots, never live ORM rows.

Two indexes carry the queries:
- (vehicle_id, timestamp) answers latest-per-vehicle and trail ranges.
- (grid_cell, timestamp) answers proximity: the search circle becomes a set
  of contiguous cell ranges, so only reports in nearby cells and inside the
  recency window are read. Exact haversine filtering and the
  most-recent-per-vehicle reduction run on that candidate set.

"Latest" is always decided by stored timestamp (ties by id), so reports
delivered out of order still resolve correctly on read.
"""

import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_service.app.core.config import Settings, settings as default_settings
from tracking_service.app.core.exceptions import NotFoundError, StorageFault, ValidationError
from tracking_service.app.models.position_report import PositionReport
from tracking_service.app.schemas.position import PositionReportCreate, StoredReport, as_utc
from tracking_service.app.services.classifier import utc_now
from tracking_service.app.services.geo import (
    GeoPoint,
    covering_cell_ranges,
    grid_cell,
    haversine_distance,
    is_valid_coordinate,
)

logger = logging.getLogger(__name__)


def to_storage_time(value: datetime) -> datetime:
    """Stored timestamps are naive UTC."""
    return as_utc(value).replace(tzinfo=None)


def _finite(value) -> bool:
    return value is not None and math.isfinite(value)


def validate_report(report: PositionReportCreate, config: Settings, now: Optional[datetime] = None) -> None:
    """
    Check a raw report against the stored-report invariants.

    Raises:
        ValidationError: Listing every violated field rule
    """
    errors = []

    if not is_valid_coordinate(report.latitude, report.longitude):
        errors.append({"field": "coordinates", "message": "Latitude must be in [-90, 90] and longitude in [-180, 180]"})

    if not _finite(report.speed) or report.speed < 0:
        errors.append({"field": "speed", "message": "Speed cannot be negative"})
    elif report.speed > config.max_speed_kmh:
        errors.append({"field": "speed", "message": f"Speed cannot exceed {config.max_speed_kmh} km/h"})

    if not _finite(report.heading) or not 0 <= report.heading < 360:
        errors.append({"field": "heading", "message": "Heading must be in [0, 360)"})

    if not _finite(report.accuracy) or report.accuracy < 0:
        errors.append({"field": "accuracy", "message": "Accuracy cannot be negative"})

    if report.altitude is not None and not _finite(report.altitude):
        errors.append({"field": "altitude", "message": "Altitude must be a finite number"})

    now = now or utc_now()
    captured = as_utc(report.timestamp)
    if captured > now + timedelta(seconds=config.max_future_skew_seconds):
        errors.append({"field": "timestamp", "message": "Timestamp lies in the future"})
    elif captured < now - timedelta(hours=config.retention_hours):
        errors.append({"field": "timestamp", "message": "Timestamp is older than the retention window"})

    if errors:
        raise ValidationError("Invalid position report", details={"errors": errors})


class GeospatialStore:
    """Time and space indexed store of position reports."""

    def __init__(self, db: AsyncSession, config: Settings = default_settings):
        self._db = db
        self._config = config

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Storage fault", extra={"operation": operation, "error": str(exc)})
            await self._db.rollback()
            raise StorageFault(operation) from exc

    async def rollback(self) -> None:
        """Reset the session after a cancelled operation so it can be reused."""
        try:
            await self._db.rollback()
        except SQLAlchemyError as exc:
            logger.error("Storage fault", extra={"operation": "rollback", "error": str(exc)})
            raise StorageFault("rollback") from exc

    async def insert(self, report: PositionReportCreate, now: Optional[datetime] = None) -> StoredReport:
        """
        Persist one report.

        is_moving and the spatial key are derived here, once, and never
        recomputed.

        Raises:
            ValidationError: If coordinates, speed, heading, accuracy or timestamp are out of bounds
            StorageFault: If the write fails
        """
        validate_report(report, self._config, now)

        row = PositionReport(
            vehicle_id=report.vehicle_id,
            route_id=report.route_id,
            latitude=report.latitude,
            longitude=report.longitude,
            speed=report.speed,
            heading=report.heading,
            accuracy=report.accuracy,
            altitude=report.altitude,
            source=report.source,
            is_moving=report.speed > self._config.moving_threshold_kmh,
            grid_cell=grid_cell(report.latitude, report.longitude, self._config.grid_cell_degrees),
            timestamp=to_storage_time(report.timestamp),
            created_at=to_storage_time(utc_now()),
        )

        async with self._guard("insert"):
            self._db.add(row)
            await self._db.commit()

        return StoredReport.model_validate(row)

    async def latest_for_vehicle(self, vehicle_id: str) -> StoredReport:
        """
        Most recent report of one vehicle.

        Raises:
            NotFoundError: If the vehicle has no stored reports
        """
        stmt = (
            select(PositionReport)
            .where(PositionReport.vehicle_id == vehicle_id)
            .order_by(PositionReport.timestamp.desc(), PositionReport.id.desc())
            .limit(1)
        )
        async with self._guard("latest_for_vehicle"):
            row = (await self._db.execute(stmt)).scalar_one_or_none()

        if row is None:
            raise NotFoundError(
                "Position", vehicle_id,
                message="No location data available for this vehicle",
            )
        return StoredReport.model_validate(row)

    async def range_for_vehicle(
        self,
        vehicle_id: str,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
        after_id: Optional[int] = None,
    ) -> List[StoredReport]:
        """
        Reports of one vehicle with start <= timestamp <= end, oldest first.

        Results are bounded by limit (history_page_size when None). Callers
        continue a long range by querying again with start set to the last
        timestamp seen and after_id to the last id seen; reports at exactly
        that timestamp with an id <= after_id are then skipped.
        """
        limit = limit or self._config.history_page_size
        start_at = to_storage_time(start)

        stmt = select(PositionReport).where(
            PositionReport.vehicle_id == vehicle_id,
            PositionReport.timestamp >= start_at,
            PositionReport.timestamp <= to_storage_time(end),
        )
        if after_id is not None:
            stmt = stmt.where(
                or_(PositionReport.timestamp > start_at, PositionReport.id > after_id)
            )
        stmt = stmt.order_by(PositionReport.timestamp.asc(), PositionReport.id.asc()).limit(limit)

        async with self._guard("range_for_vehicle"):
            rows = (await self._db.execute(stmt)).scalars().all()

        return [StoredReport.model_validate(row) for row in rows]

    async def nearby(
        self,
        point: GeoPoint,
        radius_km: float,
        recency_window: timedelta,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Tuple[StoredReport, float]]:
        """
        One (report, distance_km) per vehicle within radius_km of point.

        Each entry is the vehicle's most recent report inside the recency
        window that also lies inside the radius. Sorted by distance.
        """
        cutoff = to_storage_time((now or utc_now()) - recency_window)
        ranges = covering_cell_ranges(point, radius_km, self._config.grid_cell_degrees)

        stmt = select(PositionReport).where(
            or_(*[PositionReport.grid_cell.between(lo, hi) for lo, hi in ranges]),
            PositionReport.timestamp >= cutoff,
        )
        async with self._guard("nearby"):
            rows = (await self._db.execute(stmt)).scalars().all()

        best: Dict[str, Tuple[PositionReport, float]] = {}
        for row in rows:
            distance = haversine_distance(point.latitude, point.longitude, row.latitude, row.longitude)
            if distance > radius_km:
                continue
            current = best.get(row.vehicle_id)
            if current is None or (row.timestamp, row.id) > (current[0].timestamp, current[0].id):
                best[row.vehicle_id] = (row, distance)

        ordered = sorted(best.values(), key=lambda item: (item[1], item[0].vehicle_id))
        if limit is not None:
            ordered = ordered[:limit]

        return [(StoredReport.model_validate(row), distance) for row, distance in ordered]

    async def latest_for_all_vehicles(
        self,
        recency_window: timedelta,
        now: Optional[datetime] = None,
    ) -> List[StoredReport]:
        """Most recent report of every vehicle that reported inside the window."""
        cutoff = to_storage_time((now or utc_now()) - recency_window)
        stmt = select(PositionReport).where(PositionReport.timestamp >= cutoff)

        async with self._guard("latest_for_all_vehicles"):
            rows = (await self._db.execute(stmt)).scalars().all()

        latest: Dict[str, PositionReport] = {}
        for row in rows:
            current = latest.get(row.vehicle_id)
            if current is None or (row.timestamp, row.id) > (current.timestamp, current.id):
                latest[row.vehicle_id] = row

        ordered = sorted(latest.values(), key=lambda row: row.vehicle_id)
        return [StoredReport.model_validate(row) for row in ordered]

    async def evict_older_than(self, retention_window: timedelta, now: Optional[datetime] = None) -> int:
        """Delete reports captured before now - retention_window. Returns the count."""
        cutoff = to_storage_time((now or utc_now()) - retention_window)

        async with self._guard("evict_older_than"):
            result = await self._db.execute(
                delete(PositionReport).where(PositionReport.timestamp < cutoff)
            )
            await self._db.commit()

        deleted = result.rowcount or 0
        logger.info("Evicted position reports", extra={"cutoff": cutoff.isoformat(), "deleted": deleted})
        return deleted

    async def delete_for_vehicle(self, vehicle_id: str) -> int:
        """Delete every report of a vehicle removed from the catalog."""
        async with self._guard("delete_for_vehicle"):
            result = await self._db.execute(
                delete(PositionReport).where(PositionReport.vehicle_id == vehicle_id)
            )
            await self._db.commit()

        deleted = result.rowcount or 0
        logger.info("Deleted reports for removed vehicle", extra={"vehicle_id": vehicle_id, "deleted": deleted})
        return deleted
