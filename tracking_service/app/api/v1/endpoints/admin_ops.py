"""
Admin Operations API Endpoints.

Manual maintenance of the position store.
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tracking_service.app.core.config import settings
from tracking_service.app.core.dependencies import get_cache_service, get_store
from tracking_service.app.core.guards import require_role
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.models.enums import UserRole
from tracking_service.app.services.cache import LIVE_LOCATIONS_KEY, CacheService
from tracking_service.app.services.store import GeospatialStore

router = APIRouter(prefix="/admin/ops", tags=["Admin - Ops"])


@router.post("/evict")
async def trigger_eviction(
    retention_hours: Optional[int] = Query(None, ge=1, description="Defaults to the configured retention"),
    principal: dict = Depends(require_role([UserRole.ADMIN])),
    store: GeospatialStore = Depends(get_store),
    cache: CacheService = Depends(get_cache_service),
):
    """
    Evict position reports older than the retention window now, without
    waiting for the background worker. Safe to repeat.
    """
    hours = retention_hours or settings.retention_hours
    deleted = await with_deadline(store.evict_older_than(timedelta(hours=hours)), None, "evict_older_than")
    await cache.delete(LIVE_LOCATIONS_KEY)
    return {"message": f"Evicted {deleted} reports older than {hours} hours", "deleted": deleted}
