"""
Failure Injection Tests.

Deadlines, storage faults and the retention worker's resilience.
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from tracking_service.app.core.exceptions import DeadlineExceededError, StorageFault
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.services.eta import ETAEstimator
from tracking_service.app.services.geo import GeoPoint
from tracking_service.app.services.retention import RetentionWorker
from tracking_service.app.services.store import GeospatialStore

from tracking_service.tests.factories import COLOMBO, NOW, auth_headers, make_report


@pytest.mark.asyncio
async def test_with_deadline_raises_timeout():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(DeadlineExceededError) as exc_info:
        await with_deadline(slow(), 0.01, "slow_op")

    # Also usable as a plain TimeoutError
    assert isinstance(exc_info.value, TimeoutError)
    assert exc_info.value.error_code == "ERR_TIMEOUT"
    assert exc_info.value.details["operation"] == "slow_op"


@pytest.mark.asyncio
async def test_with_deadline_returns_result():
    async def fast():
        return 42

    assert await with_deadline(fast(), 1.0, "fast_op") == 42


@pytest.mark.asyncio
async def test_batch_eta_turns_deadlines_into_item_errors(store, test_settings, mocker):
    async def stalled(vehicle_id):
        await asyncio.sleep(1)

    mocker.patch.object(store, "latest_for_vehicle", side_effect=stalled)
    estimator = ETAEstimator(store, test_settings)

    items = await estimator.estimate_arrival_many(["bus-001", "bus-002"], GeoPoint(*COLOMBO), deadline=0.01)

    assert [item.result for item in items] == [None, None]
    assert all("timed out" in item.error for item in items)


@pytest.mark.asyncio
async def test_storage_errors_become_storage_faults(store, db_session, mocker):
    mocker.patch.object(
        db_session, "execute", side_effect=OperationalError("SELECT", {}, Exception("disk I/O error"))
    )

    with pytest.raises(StorageFault) as exc_info:
        await store.latest_for_vehicle("bus-001")
    assert exc_info.value.error_code == "ERR_STORAGE"


@pytest.mark.asyncio
async def test_retention_run_once(session_factory, test_settings, store):
    await store.insert(make_report(timestamp=NOW - timedelta(hours=23)), now=NOW)
    worker = RetentionWorker(session_factory, test_settings.model_copy(update={"retention_hours": 1}))

    assert await worker.run_once() == 1
    assert await worker.run_once() == 0


@pytest.mark.asyncio
async def test_retention_loop_survives_failed_runs(session_factory, test_settings, mocker):
    config = test_settings.model_copy(update={"eviction_interval_seconds": 0})
    worker = RetentionWorker(session_factory, config)

    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise StorageFault("evict_older_than")
        return 0

    mocker.patch.object(worker, "run_once", side_effect=flaky)

    worker.start()
    for _ in range(50):
        if len(calls) >= 2:
            break
        await asyncio.sleep(0.01)
    await worker.stop()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_retention_run_once_honours_deadline(session_factory, test_settings, mocker):
    async def stalled(*args, **kwargs):
        await asyncio.sleep(1)

    mocker.patch.object(GeospatialStore, "evict_older_than", side_effect=stalled)
    worker = RetentionWorker(session_factory, test_settings)

    with pytest.raises(DeadlineExceededError) as exc_info:
        await worker.run_once(deadline=0.01)
    assert exc_info.value.details["operation"] == "evict_older_than"


@pytest.mark.asyncio
async def test_vehicle_removed_cascade_times_out(client, seeded_catalog, test_settings, mocker):
    async def stalled(*args, **kwargs):
        await asyncio.sleep(1)

    mocker.patch.object(GeospatialStore, "delete_for_vehicle", side_effect=stalled)
    mocker.patch(
        "tracking_service.app.core.reliability.settings",
        test_settings.model_copy(update={"operation_timeout_seconds": 0.01}),
    )

    response = await client.post("/v1/catalog-events/vehicles/bus-001/removed", headers=auth_headers("admin"))

    assert response.status_code == 504
    assert response.json()["error_code"] == "ERR_TIMEOUT"


@pytest.mark.asyncio
async def test_batch_eta_resets_session_after_deadline(store, test_settings, mocker):
    async def stalled(vehicle_id):
        await asyncio.sleep(1)

    mocker.patch.object(store, "latest_for_vehicle", side_effect=stalled)
    rollback = mocker.spy(store, "rollback")
    estimator = ETAEstimator(store, test_settings)

    await estimator.estimate_arrival_many(["bus-001", "bus-002"], GeoPoint(*COLOMBO), deadline=0.01)

    assert rollback.call_count == 2
