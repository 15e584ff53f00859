import asyncio
from datetime import datetime, timedelta

import pytest

from fleetops.db.store import Entity, StoreConflict, StoreTransactionFailed
from fleetops.dispatch.engine import DispatchEngine
from fleetops.dispatch.errors import (
    CargoExceedsCapacity,
    DriverUnavailable,
    InvalidOdometerReading,
    InvalidTripState,
    LicenseExpired,
    VehicleUnavailable,
)
from tests.conftest import NOW
from tests.factories import FailingStore, add_driver, add_vehicle, snapshot


@pytest.mark.asyncio
async def test_dispatch_then_complete_scenario(store, engine) -> None:
    vehicle = await add_vehicle(store, max_load_capacity=20000.0, odometer=15000.0)
    driver = await add_driver(store)

    trip = await engine.dispatch(vehicle["id"], driver["id"], 18000.0)

    assert trip["status"] == "DISPATCHED"
    assert trip["start_odometer"] == 15000.0
    assert trip["end_odometer"] is None
    assert trip["created_at"] == NOW
    assert (await store.get(Entity.VEHICLES, vehicle["id"]))["status"] == "ON_TRIP"
    assert (await store.get(Entity.DRIVERS, driver["id"]))["status"] == "ON_TRIP"

    done = await engine.complete(trip["id"], 15500.0)

    assert done["status"] == "COMPLETED"
    assert done["end_odometer"] == 15500.0
    vehicle_after = await store.get(Entity.VEHICLES, vehicle["id"])
    assert vehicle_after["status"] == "AVAILABLE"
    assert vehicle_after["odometer"] == 15500.0
    assert vehicle_after["current_trip_id"] is None
    assert (await store.get(Entity.DRIVERS, driver["id"]))["status"] == "ON_DUTY"

    with pytest.raises(InvalidTripState):
        await engine.complete(trip["id"], 15200.0)


@pytest.mark.asyncio
async def test_dispatch_links_vehicle_and_driver_to_trip(store, engine) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store)

    trip = await engine.dispatch(vehicle["id"], driver["id"], 1000.0)

    assert (await store.get(Entity.VEHICLES, vehicle["id"]))["current_trip_id"] == trip["id"]
    assert (await store.get(Entity.DRIVERS, driver["id"]))["current_trip_id"] == trip["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["ON_TRIP", "IN_SHOP", "RETIRED"])
async def test_unavailable_vehicle_is_rejected_without_writes(store, engine, status) -> None:
    vehicle = await add_vehicle(store, status=status)
    driver = await add_driver(store)
    before = await snapshot(store)

    with pytest.raises(VehicleUnavailable):
        await engine.dispatch(vehicle["id"], driver["id"], 100.0)

    assert await snapshot(store) == before


@pytest.mark.asyncio
async def test_missing_vehicle_is_unavailable(store, engine) -> None:
    driver = await add_driver(store)

    with pytest.raises(VehicleUnavailable):
        await engine.dispatch(999, driver["id"], 100.0)


@pytest.mark.asyncio
async def test_cargo_over_capacity_is_rejected(store, engine) -> None:
    vehicle = await add_vehicle(store, max_load_capacity=5000.0)
    driver = await add_driver(store)
    before = await snapshot(store)

    with pytest.raises(CargoExceedsCapacity):
        await engine.dispatch(vehicle["id"], driver["id"], 5000.5)

    assert await snapshot(store) == before


@pytest.mark.asyncio
async def test_cargo_at_exact_capacity_is_accepted(store, engine) -> None:
    vehicle = await add_vehicle(store, max_load_capacity=5000.0)
    driver = await add_driver(store)

    trip = await engine.dispatch(vehicle["id"], driver["id"], 5000.0)

    assert trip["cargo_weight"] == 5000.0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["OFF_DUTY", "SUSPENDED", "ON_TRIP"])
async def test_unavailable_driver_is_rejected_without_writes(store, engine, status) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store, status=status)
    before = await snapshot(store)

    with pytest.raises(DriverUnavailable):
        await engine.dispatch(vehicle["id"], driver["id"], 100.0)

    assert await snapshot(store) == before


@pytest.mark.asyncio
async def test_missing_driver_is_unavailable(store, engine) -> None:
    vehicle = await add_vehicle(store)

    with pytest.raises(DriverUnavailable):
        await engine.dispatch(vehicle["id"], 999, 100.0)

    assert (await store.get(Entity.VEHICLES, vehicle["id"]))["status"] == "AVAILABLE"


@pytest.mark.asyncio
async def test_expired_license_is_rejected(store, engine) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store, license_expiry=NOW - timedelta(days=1))
    before = await snapshot(store)

    with pytest.raises(LicenseExpired):
        await engine.dispatch(vehicle["id"], driver["id"], 100.0)

    assert await snapshot(store) == before


@pytest.mark.asyncio
async def test_license_expiring_right_now_is_still_valid(store, engine) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store, license_expiry=NOW)

    trip = await engine.dispatch(vehicle["id"], driver["id"], 100.0)

    assert trip["status"] == "DISPATCHED"


@pytest.mark.asyncio
async def test_naive_license_expiry_is_read_as_utc(store, engine) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store, license_expiry=datetime(2026, 3, 1, 11, 59))

    with pytest.raises(LicenseExpired):
        await engine.dispatch(vehicle["id"], driver["id"], 100.0)


@pytest.mark.asyncio
async def test_first_failing_precondition_wins(store, engine) -> None:
    busy_vehicle = await add_vehicle(store, status="IN_SHOP", max_load_capacity=10.0)
    small_vehicle = await add_vehicle(store, max_load_capacity=10.0)
    off_duty = await add_driver(store, status="OFF_DUTY", license_expiry=NOW - timedelta(days=3))

    with pytest.raises(VehicleUnavailable):
        await engine.dispatch(busy_vehicle["id"], off_duty["id"], 50.0)
    with pytest.raises(CargoExceedsCapacity):
        await engine.dispatch(small_vehicle["id"], off_duty["id"], 50.0)
    with pytest.raises(DriverUnavailable):
        await engine.dispatch(small_vehicle["id"], off_duty["id"], 5.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("weight", [0, -1.0, float("nan"), float("inf")])
async def test_non_positive_cargo_is_a_caller_error(store, engine, weight) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store)

    with pytest.raises(ValueError):
        await engine.dispatch(vehicle["id"], driver["id"], weight)


@pytest.mark.asyncio
async def test_complete_requires_odometer_past_start(store, engine) -> None:
    vehicle = await add_vehicle(store, odometer=15000.0)
    driver = await add_driver(store)
    trip = await engine.dispatch(vehicle["id"], driver["id"], 100.0)
    before = await snapshot(store)

    for reading in (15000.0, 14999.0):
        with pytest.raises(InvalidOdometerReading):
            await engine.complete(trip["id"], reading)

    assert await snapshot(store) == before


@pytest.mark.asyncio
async def test_complete_unknown_trip(store, engine) -> None:
    with pytest.raises(InvalidTripState):
        await engine.complete(42, 100.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["DRAFT", "CANCELLED"])
async def test_complete_rejects_trips_that_were_never_dispatched(store, engine, status) -> None:
    trip = await store.create(
        Entity.TRIPS,
        {"vehicle_id": 1, "driver_id": 1, "cargo_weight": 10.0, "status": status, "created_at": NOW},
    )

    with pytest.raises(InvalidTripState):
        await engine.complete(trip["id"], 100.0)


@pytest.mark.asyncio
async def test_second_completion_does_not_touch_the_reused_vehicle(store, engine) -> None:
    vehicle = await add_vehicle(store, odometer=100.0)
    driver = await add_driver(store)
    first = await engine.dispatch(vehicle["id"], driver["id"], 10.0)
    await engine.complete(first["id"], 200.0)
    second = await engine.dispatch(vehicle["id"], driver["id"], 10.0)
    before = await snapshot(store)

    with pytest.raises(InvalidTripState):
        await engine.complete(first["id"], 300.0)

    assert await snapshot(store) == before
    assert second["start_odometer"] == 200.0
    assert (await store.get(Entity.VEHICLES, vehicle["id"]))["current_trip_id"] == second["id"]


@pytest.mark.asyncio
async def test_concurrent_dispatch_of_one_vehicle_has_one_winner(store, engine) -> None:
    vehicle = await add_vehicle(store)
    driver_a = await add_driver(store)
    driver_b = await add_driver(store, name="Jane Roe")

    results = await asyncio.gather(
        engine.dispatch(vehicle["id"], driver_a["id"], 100.0),
        engine.dispatch(vehicle["id"], driver_b["id"], 100.0),
        return_exceptions=True,
    )

    trips = [r for r in results if isinstance(r, dict)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(trips) == 1
    assert len(errors) == 1 and isinstance(errors[0], VehicleUnavailable)
    assert await store.count(Entity.TRIPS) == 1

    loser = driver_b if trips[0]["driver_id"] == driver_a["id"] else driver_a
    assert (await store.get(Entity.DRIVERS, loser["id"]))["status"] == "ON_DUTY"


@pytest.mark.asyncio
async def test_concurrent_dispatch_of_one_driver_has_one_winner(store, engine) -> None:
    vehicle_a = await add_vehicle(store)
    vehicle_b = await add_vehicle(store)
    driver = await add_driver(store)

    results = await asyncio.gather(
        engine.dispatch(vehicle_a["id"], driver["id"], 100.0),
        engine.dispatch(vehicle_b["id"], driver["id"], 100.0),
        return_exceptions=True,
    )

    assert sum(isinstance(r, dict) for r in results) == 1
    assert sum(isinstance(r, DriverUnavailable) for r in results) == 1
    statuses = sorted([
        (await store.get(Entity.VEHICLES, vehicle_a["id"]))["status"],
        (await store.get(Entity.VEHICLES, vehicle_b["id"]))["status"],
    ])
    assert statuses == ["AVAILABLE", "ON_TRIP"]


@pytest.mark.asyncio
async def test_failed_write_rolls_back_the_whole_dispatch() -> None:
    store = FailingStore(Entity.DRIVERS)
    engine = DispatchEngine(store, clock=lambda: NOW)
    vehicle = await add_vehicle(store)
    driver = await add_driver(store)
    before = await snapshot(store)

    with pytest.raises(StoreTransactionFailed):
        await engine.dispatch(vehicle["id"], driver["id"], 100.0)

    assert await snapshot(store) == before


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "entity, expected",
    [(Entity.VEHICLES, VehicleUnavailable), (Entity.DRIVERS, DriverUnavailable)],
)
async def test_write_conflict_during_dispatch_maps_to_unavailable(entity, expected) -> None:
    store = FailingStore(entity, error=StoreConflict)
    engine = DispatchEngine(store, clock=lambda: NOW)
    vehicle = await add_vehicle(store)
    driver = await add_driver(store)

    with pytest.raises(expected):
        await engine.dispatch(vehicle["id"], driver["id"], 100.0)

    assert await store.count(Entity.TRIPS) == 0


@pytest.mark.asyncio
async def test_write_conflict_on_trip_during_completion_is_invalid_state(store) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store)
    trip = await DispatchEngine(store, clock=lambda: NOW).dispatch(vehicle["id"], driver["id"], 100.0)

    conflicting = FailingStore(Entity.TRIPS, error=StoreConflict)
    conflicting._state = store._state

    with pytest.raises(InvalidTripState):
        await DispatchEngine(conflicting, clock=lambda: NOW).complete(trip["id"], 16000.0)

    assert (await store.get(Entity.TRIPS, trip["id"]))["status"] == "DISPATCHED"


@pytest.mark.asyncio
@pytest.mark.parametrize("entity", [Entity.VEHICLES, Entity.DRIVERS])
async def test_failed_release_rolls_back_the_whole_completion(store, entity) -> None:
    vehicle = await add_vehicle(store, odometer=15000.0)
    driver = await add_driver(store)
    trip = await DispatchEngine(store, clock=lambda: NOW).dispatch(vehicle["id"], driver["id"], 100.0)

    failing = FailingStore(entity)
    failing._state = store._state

    with pytest.raises(StoreTransactionFailed):
        await DispatchEngine(failing, clock=lambda: NOW).complete(trip["id"], 16000.0)

    trip_after = await store.get(Entity.TRIPS, trip["id"])
    assert trip_after["status"] == "DISPATCHED"
    assert trip_after["end_odometer"] is None
    vehicle_after = await store.get(Entity.VEHICLES, vehicle["id"])
    assert vehicle_after["status"] == "ON_TRIP"
    assert vehicle_after["odometer"] == 15000.0
    assert vehicle_after["current_trip_id"] == trip["id"]
    driver_after = await store.get(Entity.DRIVERS, driver["id"])
    assert driver_after["status"] == "ON_TRIP"
    assert driver_after["current_trip_id"] == trip["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize("reading", [float("inf"), float("nan")])
async def test_unknown_trip_is_reported_before_a_bad_odometer(store, engine, reading) -> None:
    with pytest.raises(InvalidTripState):
        await engine.complete(999, reading)


@pytest.mark.asyncio
@pytest.mark.parametrize("reading", [float("inf"), float("-inf"), float("nan")])
async def test_non_finite_odometer_is_rejected_on_a_dispatched_trip(store, engine, reading) -> None:
    vehicle = await add_vehicle(store)
    driver = await add_driver(store)
    trip = await engine.dispatch(vehicle["id"], driver["id"], 100.0)
    before = await snapshot(store)

    with pytest.raises(InvalidOdometerReading):
        await engine.complete(trip["id"], reading)

    assert await snapshot(store) == before
