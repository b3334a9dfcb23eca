"""
Enumerations shared by models, schemas and services.
"""

import enum


class UserRole(str, enum.Enum):
    """
    Principal role carried in the bearer token.

    Roles:
        ADMIN: Full access, including cascade and maintenance operations
        OPERATOR: Submits positions and reads vehicle history
        COMMUTER: Read-only rider access
    """
    ADMIN = "admin"
    OPERATOR = "operator"
    COMMUTER = "commuter"


class PositionSource(str, enum.Enum):
    """Where a position report came from."""
    DEVICE_REPORTED = "device_reported"
    MANUALLY_ENTERED = "manually_entered"
    INTERPOLATED = "interpolated"


class VehicleStatus(str, enum.Enum):
    """Vehicle status as published by the vehicle catalog."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"
