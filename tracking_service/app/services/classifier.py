"""
Staleness and liveness classification.

Pure functions over a report's age and heading. They never raise: a stale
or odd report still gets a definite answer.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from tracking_service.app.schemas.position import StoredReport, as_utc
from tracking_service.app.services.geo import round_half_up

COMPASS_POINTS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def age_seconds(timestamp: datetime, now: Optional[datetime] = None) -> float:
    """Seconds elapsed since timestamp (negative if it lies in the future)."""
    now = as_utc(now) if now is not None else utc_now()
    return (now - as_utc(timestamp)).total_seconds()


def is_stale(report: StoredReport, max_age_minutes: float, now: Optional[datetime] = None) -> bool:
    """True when the report is older than max_age_minutes."""
    return age_seconds(report.timestamp, now) > max_age_minutes * 60


def human_age(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """
    Human-readable age such as "42 seconds ago" or "3 hours ago".

    Always computed against the evaluation time, never stored.
    """
    seconds = max(0, int(age_seconds(timestamp, now)))
    minutes = seconds // 60
    hours = minutes // 60

    if seconds < 60:
        return f"{seconds} seconds ago"
    if minutes < 60:
        return f"{minutes} minutes ago"
    if hours < 24:
        return f"{hours} hours ago"
    return f"{hours // 24} days ago"


def heading_to_compass(heading: float) -> str:
    """Eight-point compass direction for a heading in degrees."""
    if heading is None or not math.isfinite(heading):
        return COMPASS_POINTS[0]
    return COMPASS_POINTS[round_half_up(heading / 45) % 8]
