"""
History Aggregator tests.
"""

from datetime import timedelta

import pytest

from tracking_service.app.core.exceptions import ValidationError
from tracking_service.app.services.history import HistoryAggregator, compute_trail_stats

from tracking_service.tests.factories import COLOMBO, KM_IN_LAT_DEGREES, NOW, make_report


@pytest.fixture
def aggregator(store, test_settings):
    return HistoryAggregator(store, test_settings)


async def _insert_trail(store):
    # Three points 10 km apart, 15 minutes apart
    for index, (minutes_ago, speed) in enumerate([(31, 0.0), (16, 40.0), (1, 50.0)]):
        await store.insert(
            make_report(lat=COLOMBO[0] + index * 10 * KM_IN_LAT_DEGREES, minutes_ago=minutes_ago, speed=speed),
            now=NOW,
        )


@pytest.mark.asyncio
async def test_trail_stats_three_points(aggregator, store):
    await _insert_trail(store)

    stats = await aggregator.trail_stats("bus-001", NOW - timedelta(hours=1), NOW)

    assert stats.total_points == 3
    assert stats.total_distance_km == pytest.approx(20.0, abs=0.05)
    assert stats.duration_minutes == 30
    # Only the two moving points count towards the average
    assert stats.average_speed_kmh == 45.0
    assert stats.max_speed_kmh == 50.0


@pytest.mark.asyncio
async def test_trail_stats_single_point_is_zero(aggregator, store):
    await store.insert(make_report(speed=60.0), now=NOW)

    stats = await aggregator.trail_stats("bus-001", NOW - timedelta(hours=1), NOW)

    assert stats.total_points == 0
    assert stats.total_distance_km == 0
    assert stats.max_speed_kmh == 0
    assert stats.duration_minutes == 0


def test_compute_trail_stats_empty():
    assert compute_trail_stats([]).total_distance_km == 0


@pytest.mark.asyncio
async def test_trail_stats_pages_through_the_whole_window(store, test_settings):
    paged = HistoryAggregator(store, test_settings.model_copy(update={"history_page_size": 2}))
    await _insert_trail(store)
    # Same timestamp as the middle point, to straddle a page boundary
    await store.insert(
        make_report(lat=COLOMBO[0] + 10 * KM_IN_LAT_DEGREES, minutes_ago=16, speed=40.0), now=NOW
    )

    stats = await paged.trail_stats("bus-001", NOW - timedelta(hours=1), NOW)

    assert stats.total_points == 4
    assert stats.total_distance_km == pytest.approx(20.0, abs=0.05)


@pytest.mark.asyncio
async def test_trail_returns_ordered_points(aggregator, store):
    await _insert_trail(store)

    points = await aggregator.trail("bus-001", NOW - timedelta(hours=1), NOW, limit=2)

    assert len(points) == 2
    assert points[0].timestamp < points[1].timestamp


@pytest.mark.asyncio
async def test_start_after_end_rejected(aggregator):
    with pytest.raises(ValidationError):
        await aggregator.trail_stats("bus-001", NOW, NOW - timedelta(minutes=5))
