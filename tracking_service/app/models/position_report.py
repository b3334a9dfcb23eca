"""
Position Report database model.

One timestamped GPS sample for one vehicle. Rows are written once by the
store and never updated; corrections arrive as new reports.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Enum, Index
from sqlalchemy.sql import func
from tracking_service.app.db.session import Base
from tracking_service.app.models.enums import PositionSource


class PositionReport(Base):
    """
    Position Report model.

    Indexes:
        (vehicle_id, timestamp): per-vehicle recency lookups and trail ranges
        (grid_cell, timestamp): spatial lookups restricted to a recency window
        timestamp: live scans and retention eviction
    """
    __tablename__ = "position_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owning vehicle (catalog identifier, opaque to this service)
    vehicle_id = Column(String(64), nullable=False)
    route_id = Column(String(64), nullable=True, index=True)

    # GPS sample
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    speed = Column(Float, nullable=False, default=0.0)  # km/h
    heading = Column(Float, nullable=False, default=0.0)  # degrees, [0, 360)
    accuracy = Column(Float, nullable=False, default=10.0)  # meters
    altitude = Column(Float, nullable=True)  # meters above sea level
    source = Column(Enum(PositionSource), nullable=False, default=PositionSource.DEVICE_REPORTED)

    # Derived once at creation
    is_moving = Column(Boolean, nullable=False, default=False)
    grid_cell = Column(Integer, nullable=False)

    # Timing (naive UTC)
    timestamp = Column(DateTime, nullable=False)  # capture time on the device
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_position_reports_vehicle_ts", "vehicle_id", "timestamp"),
        Index("ix_position_reports_cell_ts", "grid_cell", "timestamp"),
        Index("ix_position_reports_ts", "timestamp"),
    )

    def __repr__(self):
        return f"<PositionReport(vehicle_id={self.vehicle_id}, lat={self.latitude}, lng={self.longitude}, ts={self.timestamp})>"
