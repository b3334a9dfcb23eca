"""
Read-only adapters over the vehicle and route catalogs.
"""

import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_service.app.core.exceptions import StorageFault
from tracking_service.app.models.catalog import RouteRecord, VehicleRecord
from tracking_service.app.schemas.position import RouteSummary, VehicleSummary

logger = logging.getLogger(__name__)


class VehicleCatalog(Protocol):
    async def get_vehicle(self, vehicle_id: str) -> Optional[VehicleSummary]:
        ...


class RouteCatalog(Protocol):
    async def get_route(self, route_id: str) -> Optional[RouteSummary]:
        ...


class SqlVehicleCatalog:
    """Vehicle catalog backed by the mirrored vehicles table."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_vehicle(self, vehicle_id: str) -> Optional[VehicleSummary]:
        try:
            record = await self._db.get(VehicleRecord, vehicle_id)
        except SQLAlchemyError as exc:
            logger.error("Vehicle lookup failed", extra={"vehicle_id": vehicle_id, "error": str(exc)})
            raise StorageFault("get_vehicle") from exc

        return VehicleSummary.model_validate(record) if record else None


class SqlRouteCatalog:
    """Route catalog backed by the mirrored routes table."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_route(self, route_id: str) -> Optional[RouteSummary]:
        try:
            record = await self._db.get(RouteRecord, route_id)
        except SQLAlchemyError as exc:
            logger.error("Route lookup failed", extra={"route_id": route_id, "error": str(exc)})
            raise StorageFault("get_route") from exc

        return RouteSummary.model_validate(record) if record else None


class InMemoryVehicleCatalog:
    """Dict-backed vehicle catalog for scripts and tests."""

    def __init__(self, vehicles=None):
        self._vehicles = {v.id: v for v in (vehicles or [])}

    async def get_vehicle(self, vehicle_id: str) -> Optional[VehicleSummary]:
        return self._vehicles.get(vehicle_id)


class InMemoryRouteCatalog:
    """Dict-backed route catalog for scripts and tests."""

    def __init__(self, routes=None):
        self._routes = {r.id: r for r in (routes or [])}

    async def get_route(self, route_id: str) -> Optional[RouteSummary]:
        return self._routes.get(route_id)
