"""
FastAPI dependencies.

Authentication reads the principal from a bearer token issued by the
identity layer. Service providers wire each engine component with its
collaborators for the current request.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_service.app.core.config import settings
from tracking_service.app.core.jwt import decode_access_token
from tracking_service.app.core.redis_client import get_redis
from tracking_service.app.db.session import get_db
from tracking_service.app.services.cache import CacheService
from tracking_service.app.services.catalog import SqlRouteCatalog, SqlVehicleCatalog
from tracking_service.app.services.eta import ETAEstimator
from tracking_service.app.services.geo import OperatingRegion
from tracking_service.app.services.history import HistoryAggregator
from tracking_service.app.services.ingest import LocationIngestGateway
from tracking_service.app.services.nearby import NearbyVehicleQueryEngine
from tracking_service.app.services.store import GeospatialStore

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Args:
        credentials: HTTP Bearer token from request header

    Returns:
        Decoded token payload containing the principal (sub, role)

    Raises:
        HTTPException: 401 if the token is invalid or carries no subject
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


def get_store(db: AsyncSession = Depends(get_db)) -> GeospatialStore:
    return GeospatialStore(db, settings)


def get_vehicle_catalog(db: AsyncSession = Depends(get_db)) -> SqlVehicleCatalog:
    return SqlVehicleCatalog(db)


def get_route_catalog(db: AsyncSession = Depends(get_db)) -> SqlRouteCatalog:
    return SqlRouteCatalog(db)


def get_ingest_gateway(
    store: GeospatialStore = Depends(get_store),
    vehicles: SqlVehicleCatalog = Depends(get_vehicle_catalog),
) -> LocationIngestGateway:
    return LocationIngestGateway(store, vehicles, OperatingRegion.from_settings(settings), settings)


def get_nearby_engine(
    store: GeospatialStore = Depends(get_store),
    vehicles: SqlVehicleCatalog = Depends(get_vehicle_catalog),
    routes: SqlRouteCatalog = Depends(get_route_catalog),
) -> NearbyVehicleQueryEngine:
    return NearbyVehicleQueryEngine(store, vehicles, routes, settings)


def get_eta_estimator(store: GeospatialStore = Depends(get_store)) -> ETAEstimator:
    return ETAEstimator(store, settings)


def get_history_aggregator(store: GeospatialStore = Depends(get_store)) -> HistoryAggregator:
    return HistoryAggregator(store, settings)


async def get_cache_service(client=Depends(get_redis)) -> CacheService:
    return CacheService(client)
