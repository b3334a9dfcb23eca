"""
Vehicle-removal cascade, manual eviction and health endpoints.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tracking_service.app.models.position_report import PositionReport
from tracking_service.app.services.geo import grid_cell

from tracking_service.tests.factories import COLOMBO, auth_headers, report_payload


async def _old_report(db_session, hours_ago: float, vehicle_id="bus-001"):
    """Write a report directly, bypassing ingest's timestamp bounds."""
    db_session.add(PositionReport(
        vehicle_id=vehicle_id,
        latitude=COLOMBO[0],
        longitude=COLOMBO[1],
        speed=0.0,
        heading=0.0,
        accuracy=10.0,
        is_moving=False,
        grid_cell=grid_cell(COLOMBO[0], COLOMBO[1], 0.05),
        timestamp=(datetime.now(timezone.utc) - timedelta(hours=hours_ago)).replace(tzinfo=None),
    ))
    await db_session.commit()


@pytest.mark.asyncio
async def test_vehicle_removed_cascade(client, seeded_catalog):
    for vehicle_id in ("bus-001", "bus-001", "bus-002"):
        response = await client.post(
            "/v1/locations", json=report_payload(vehicle_id=vehicle_id), headers=auth_headers("operator")
        )
        assert response.status_code == 201

    response = await client.post("/v1/catalog-events/vehicles/bus-001/removed", headers=auth_headers("admin"))

    assert response.status_code == 200
    assert response.json() == {"vehicle_id": "bus-001", "deleted_reports": 2}
    assert (await client.get("/v1/locations/vehicles/bus-001")).status_code == 404
    assert (await client.get("/v1/locations/vehicles/bus-002")).status_code == 200


@pytest.mark.asyncio
async def test_vehicle_removed_requires_admin(client, seeded_catalog):
    response = await client.post("/v1/catalog-events/vehicles/bus-001/removed", headers=auth_headers("operator"))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_manual_eviction(client, seeded_catalog, db_session):
    await _old_report(db_session, hours_ago=30)
    await _old_report(db_session, hours_ago=1)

    first = await client.post("/v1/admin/ops/evict", headers=auth_headers("admin"))
    second = await client.post("/v1/admin/ops/evict", headers=auth_headers("admin"))

    assert first.status_code == 200
    assert first.json()["deleted"] == 1
    assert second.json()["deleted"] == 0


@pytest.mark.asyncio
async def test_manual_eviction_with_custom_retention(client, seeded_catalog, db_session):
    await _old_report(db_session, hours_ago=3)

    response = await client.post(
        "/v1/admin/ops/evict", params={"retention_hours": 2}, headers=auth_headers("admin")
    )
    assert response.json()["deleted"] == 1


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "up"
    assert body["redis"] == "up"


@pytest.mark.asyncio
async def test_health_reports_redis_outage(client, redis_client):
    await redis_client.aclose()

    response = await client.get("/health")
    assert response.json()["redis"] == "down"
    assert response.json()["status"] == "degraded"
