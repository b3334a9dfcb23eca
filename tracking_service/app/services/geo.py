"""
Geospatial primitives.

Great-circle distance, coordinate validation, the operating-region box, and
the fixed lat/lon grid used as the store's secondary spatial key.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from tracking_service.app.core.exceptions import ValidationError

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate pair."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class OperatingRegion:
    """Bounding box outside of which reports are rejected."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @classmethod
    def from_settings(cls, settings) -> "OperatingRegion":
        return cls(
            min_lat=settings.region_min_lat,
            max_lat=settings.region_max_lat,
            min_lon=settings.region_min_lon,
            max_lon=settings.region_max_lon,
        )

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    # Float noise can push a slightly past 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return math.floor(value + 0.5)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    if latitude is None or longitude is None:
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def validate_point(latitude: float, longitude: float, label: str = "point") -> GeoPoint:
    """
    Build a GeoPoint, rejecting out-of-range coordinates.

    Raises:
        ValidationError: If latitude is outside [-90, 90] or longitude outside [-180, 180]
    """
    if not is_valid_coordinate(latitude, longitude):
        raise ValidationError(
            f"Invalid {label} coordinates: latitude must be in [-90, 90] and longitude in [-180, 180]",
            details={"field": label},
        )
    return GeoPoint(latitude=latitude, longitude=longitude)


# --- Spatial grid ---------------------------------------------------------

def grid_dimensions(cell_degrees: float) -> Tuple[int, int]:
    """Number of grid rows and columns for a cell size."""
    return math.ceil(180 / cell_degrees), math.ceil(360 / cell_degrees)


def _grid_row(latitude: float, cell_degrees: float, rows: int) -> int:
    return min(rows - 1, max(0, int(math.floor((latitude + 90) / cell_degrees))))


def _grid_col(longitude: float, cell_degrees: float, cols: int) -> int:
    return min(cols - 1, max(0, int(math.floor((longitude + 180) / cell_degrees))))


def grid_cell(latitude: float, longitude: float, cell_degrees: float) -> int:
    """Row-major cell number of the grid cell containing a point."""
    rows, cols = grid_dimensions(cell_degrees)
    return _grid_row(latitude, cell_degrees, rows) * cols + _grid_col(longitude, cell_degrees, cols)


def bounding_box(center: GeoPoint, radius_km: float) -> Tuple[Tuple[float, float], List[Tuple[float, float]]]:
    """
    Latitude interval and longitude intervals enclosing a circle.

    Longitude is returned as a list because a circle crossing the
    antimeridian needs two intervals. A circle reaching a pole covers every
    longitude.
    """
    angular = radius_km / EARTH_RADIUS_KM
    dlat = math.degrees(angular)
    lat_min = center.latitude - dlat
    lat_max = center.latitude + dlat

    if lat_min <= -90 or lat_max >= 90:
        return (max(lat_min, -90.0), min(lat_max, 90.0)), [(-180.0, 180.0)]

    ratio = math.sin(angular) / math.cos(math.radians(center.latitude))
    if ratio >= 1:
        return (lat_min, lat_max), [(-180.0, 180.0)]

    dlon = math.degrees(math.asin(ratio))
    lon_min = center.longitude - dlon
    lon_max = center.longitude + dlon

    if lon_min < -180:
        return (lat_min, lat_max), [(lon_min + 360, 180.0), (-180.0, lon_max)]
    if lon_max > 180:
        return (lat_min, lat_max), [(lon_min, 180.0), (-180.0, lon_max - 360)]
    return (lat_min, lat_max), [(lon_min, lon_max)]


def covering_cell_ranges(center: GeoPoint, radius_km: float, cell_degrees: float) -> List[Tuple[int, int]]:
    """
    Inclusive ranges of grid cells covering a circle.

    Cells are numbered row-major, so the cells of one grid row inside one
    longitude interval form a single contiguous range.
    """
    rows, cols = grid_dimensions(cell_degrees)
    (lat_min, lat_max), lon_intervals = bounding_box(center, radius_km)

    first_row = _grid_row(lat_min, cell_degrees, rows)
    last_row = _grid_row(lat_max, cell_degrees, rows)

    ranges = []
    for row in range(first_row, last_row + 1):
        base = row * cols
        for lon_lo, lon_hi in lon_intervals:
            ranges.append((
                base + _grid_col(lon_lo, cell_degrees, cols),
                base + _grid_col(lon_hi, cell_degrees, cols),
            ))
    return ranges
