"""
Catalog mirror tables.

The vehicle and route catalogs are owned by the fleet-management side of
the system. This service only reads them, through the adapters in
services/catalog.py.
"""

from sqlalchemy import Column, Integer, String, Enum, DateTime
from sqlalchemy.sql import func
from tracking_service.app.db.session import Base
from tracking_service.app.models.enums import VehicleStatus


class VehicleRecord(Base):
    """Vehicle as published by the vehicle catalog."""
    __tablename__ = "vehicles"

    id = Column(String(64), primary_key=True)
    registration_number = Column(String(50), unique=True, nullable=False)
    capacity = Column(Integer, nullable=False)
    status = Column(Enum(VehicleStatus), default=VehicleStatus.ACTIVE, nullable=False, index=True)
    model = Column(String(100), nullable=True)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<VehicleRecord(id={self.id}, registration='{self.registration_number}')>"


class RouteRecord(Base):
    """Route as published by the route catalog."""
    __tablename__ = "routes"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    route_number = Column(String(20), unique=True, nullable=False)
    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<RouteRecord(id={self.id}, number='{self.route_number}')>"
