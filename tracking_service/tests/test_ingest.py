"""
Location Ingest Gateway tests.
"""

import pytest

from tracking_service.app.core.exceptions import NotFoundError, OutOfRegionError, ValidationError
from tracking_service.app.services.geo import OperatingRegion
from tracking_service.app.services.ingest import LocationIngestGateway

from tracking_service.tests.factories import NOW, make_report


@pytest.fixture
def gateway(store, vehicle_catalog, test_settings):
    return LocationIngestGateway(store, vehicle_catalog, OperatingRegion.from_settings(test_settings), test_settings)


@pytest.mark.asyncio
async def test_submit_stores_report(gateway, store):
    stored = await gateway.submit(make_report(speed=42.0, heading=90.0), now=NOW)

    assert stored.vehicle_id == "bus-001"
    assert stored.is_moving is True
    assert (await store.latest_for_vehicle("bus-001")).id == stored.id


@pytest.mark.asyncio
async def test_submit_unknown_vehicle(gateway):
    with pytest.raises(NotFoundError):
        await gateway.submit(make_report("ghost"), now=NOW)


@pytest.mark.asyncio
async def test_submit_outside_operating_region(gateway):
    # London
    with pytest.raises(OutOfRegionError):
        await gateway.submit(make_report(lat=51.5074, lon=-0.1278), now=NOW)


@pytest.mark.asyncio
async def test_invalid_coordinates_are_validation_errors_not_region_errors(gateway):
    with pytest.raises(ValidationError):
        await gateway.submit(make_report(lat=95.0), now=NOW)


@pytest.mark.asyncio
async def test_field_validation_runs_before_catalog_lookup(gateway):
    # Unknown vehicle and a bad speed: the field error wins
    with pytest.raises(ValidationError):
        await gateway.submit(make_report("ghost", speed=-3.0), now=NOW)


@pytest.mark.asyncio
async def test_duplicate_submissions_are_stored_twice(gateway, store):
    report = make_report()
    first = await gateway.submit(report, now=NOW)
    second = await gateway.submit(report, now=NOW)

    assert first.id != second.id
    trail = await store.range_for_vehicle("bus-001", report.timestamp, report.timestamp)
    assert len(trail) == 2
