"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from tracking_service.app.api.v1.endpoints import locations, catalog_events, admin_ops

router = APIRouter()

# Position ingestion and queries
router.include_router(locations.router)

# Catalog callbacks
router.include_router(catalog_events.router)

# Ops endpoints
router.include_router(admin_ops.router)
