"""
Live map snapshot: the latest recent position of every active vehicle.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from tracking_service.app.core.config import Settings, settings as default_settings
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.models.enums import VehicleStatus
from tracking_service.app.schemas.position import LiveLocationResponse
from tracking_service.app.services.catalog import VehicleCatalog
from tracking_service.app.services.store import GeospatialStore
from tracking_service.app.services.transform import to_live


async def _collect(
    store: GeospatialStore,
    vehicles: VehicleCatalog,
    config: Settings,
    now: Optional[datetime],
) -> List[LiveLocationResponse]:
    reports = await store.latest_for_all_vehicles(
        timedelta(minutes=config.live_recency_minutes), now=now
    )

    entries = []
    for report in reports:
        vehicle = await vehicles.get_vehicle(report.vehicle_id)
        if vehicle is None or vehicle.status != VehicleStatus.ACTIVE:
            continue
        entries.append(to_live(report, vehicle, config.live_stale_minutes, now))
    return entries


async def collect_live_locations(
    store: GeospatialStore,
    vehicles: VehicleCatalog,
    config: Settings = default_settings,
    deadline: Optional[float] = None,
    now: Optional[datetime] = None,
) -> List[LiveLocationResponse]:
    """Active vehicles that reported within live_recency_minutes, ordered by vehicle id."""
    return await with_deadline(_collect(store, vehicles, config, now), deadline, "live_locations")
