"""
Catalog Event API Endpoints.

Callbacks from the vehicle catalog. Removing a vehicle from the catalog
deletes its stored position history.
"""

from fastapi import APIRouter, Depends, Path

from tracking_service.app.core.dependencies import get_cache_service, get_store
from tracking_service.app.core.guards import require_role
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.models.enums import UserRole
from tracking_service.app.services.cache import LIVE_LOCATIONS_KEY, CacheService
from tracking_service.app.services.store import GeospatialStore

router = APIRouter(prefix="/catalog-events", tags=["Catalog Events"])


@router.post("/vehicles/{vehicle_id}/removed")
async def vehicle_removed(
    vehicle_id: str = Path(..., description="Removed vehicle ID"),
    principal: dict = Depends(require_role([UserRole.ADMIN])),
    store: GeospatialStore = Depends(get_store),
    cache: CacheService = Depends(get_cache_service),
):
    """Cascade a vehicle removal to its position reports (Admin only)."""
    deleted = await with_deadline(store.delete_for_vehicle(vehicle_id), None, "delete_for_vehicle")
    await cache.delete(LIVE_LOCATIONS_KEY)
    return {"vehicle_id": vehicle_id, "deleted_reports": deleted}
