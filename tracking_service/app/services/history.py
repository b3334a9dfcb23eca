"""
History Aggregator.

Distance and speed statistics over a vehicle's trail, plus ordered trail
points for replay.
"""

from datetime import datetime
from typing import List, Optional

from tracking_service.app.core.config import Settings, settings as default_settings
from tracking_service.app.core.exceptions import ValidationError
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.schemas.position import StoredReport, TrailStats, as_utc
from tracking_service.app.services.geo import haversine_distance, round_half_up
from tracking_service.app.services.store import GeospatialStore


def compute_trail_stats(points: List[StoredReport]) -> TrailStats:
    """
    Statistics over points ordered by timestamp.

    Fewer than two points carry no movement, so every field is zero.
    Average speed only counts points flagged as moving.
    """
    if len(points) < 2:
        return TrailStats()

    total_distance = 0.0
    for prev, curr in zip(points, points[1:]):
        total_distance += haversine_distance(prev.latitude, prev.longitude, curr.latitude, curr.longitude)

    moving_speeds = [p.speed for p in points if p.is_moving]
    average_speed = sum(moving_speeds) / len(moving_speeds) if moving_speeds else 0.0

    duration = (points[-1].timestamp - points[0].timestamp).total_seconds()

    return TrailStats(
        total_points=len(points),
        total_distance_km=round(total_distance, 2),
        average_speed_kmh=round(average_speed, 1),
        max_speed_kmh=round(max(p.speed for p in points), 1),
        duration_minutes=round_half_up(duration / 60),
    )


def _check_window(start: datetime, end: datetime) -> None:
    if as_utc(start) > as_utc(end):
        raise ValidationError(
            "Start time must not be after end time",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )


class HistoryAggregator:
    """Reads trails through the store's per-vehicle index, page by page."""

    def __init__(self, store: GeospatialStore, config: Settings = default_settings):
        self.store = store
        self.config = config

    async def _all_points(self, vehicle_id: str, start: datetime, end: datetime) -> List[StoredReport]:
        page_size = self.config.history_page_size
        points: List[StoredReport] = []
        cursor, after_id = start, None

        while True:
            page = await self.store.range_for_vehicle(
                vehicle_id, cursor, end, limit=page_size, after_id=after_id
            )
            points.extend(page)
            if len(page) < page_size:
                return points
            cursor, after_id = page[-1].timestamp, page[-1].id

    async def trail_stats(
        self,
        vehicle_id: str,
        start: datetime,
        end: datetime,
        deadline: Optional[float] = None,
    ) -> TrailStats:
        """
        Statistics over every report of vehicle_id in [start, end].

        Raises:
            ValidationError: start is after end
            DeadlineExceededError: Paging outlived the deadline
        """
        _check_window(start, end)
        points = await with_deadline(self._all_points(vehicle_id, start, end), deadline, "trail_stats")
        return compute_trail_stats(points)

    async def trail(
        self,
        vehicle_id: str,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
        deadline: Optional[float] = None,
    ) -> List[StoredReport]:
        """One page of trail points, oldest first."""
        _check_window(start, end)
        limit = min(limit or self.config.history_page_size, self.config.history_page_size)
        return await with_deadline(
            self.store.range_for_vehicle(vehicle_id, start, end, limit=limit),
            deadline,
            "trail",
        )
