import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable

from fleetops.db.store import Entity, NotFound, Record, RecordAccess, Store, StoreConflict
from fleetops.dispatch.errors import (
    CargoExceedsCapacity,
    DispatchError,
    DriverUnavailable,
    InvalidOdometerReading,
    InvalidTripState,
    LicenseExpired,
    VehicleUnavailable,
)
from fleetops.dispatch.state import Dispatched, trip_state
from fleetops.schemas._base import as_utc
from fleetops.schemas.fleet import DriverStatus, VehicleStatus
from fleetops.schemas.trip import TripStatus

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class DispatchEngine:
    """Moves a vehicle and a driver onto a trip and back.

    This is the only writer of the ON_TRIP status and of ``current_trip_id``
    on vehicles and drivers. Both operations validate against records read
    inside the store transaction, and the status writes carry guards, so a
    dispatch racing another one for the same vehicle or driver is rejected
    instead of double-booking.
    """

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    async def dispatch(self, vehicle_id: Any, driver_id: Any, cargo_weight: float) -> Record:
        if not is_finite_number(cargo_weight) or cargo_weight <= 0:
            raise ValueError(f"cargo_weight must be a positive number, got {cargo_weight!r}")
        now = as_utc(self._clock())

        async def apply(tx: RecordAccess) -> Record:
            vehicle = await _load(tx, Entity.VEHICLES, vehicle_id, VehicleUnavailable)
            if vehicle["status"] != VehicleStatus.AVAILABLE.value:
                raise VehicleUnavailable()
            if cargo_weight > vehicle["max_load_capacity"]:
                raise CargoExceedsCapacity()

            driver = await _load(tx, Entity.DRIVERS, driver_id, DriverUnavailable)
            if driver["status"] != DriverStatus.ON_DUTY.value:
                raise DriverUnavailable()
            if as_utc(driver["license_expiry"]) < now:
                raise LicenseExpired()

            trip = await tx.create(
                Entity.TRIPS,
                {
                    "vehicle_id": vehicle_id,
                    "driver_id": driver_id,
                    "cargo_weight": cargo_weight,
                    "status": TripStatus.DISPATCHED.value,
                    "start_odometer": vehicle["odometer"],
                    "end_odometer": None,
                    "created_at": now,
                },
            )
            await tx.update(
                Entity.VEHICLES,
                vehicle_id,
                {"status": VehicleStatus.ON_TRIP.value, "current_trip_id": trip["id"]},
                expect={"status": VehicleStatus.AVAILABLE.value},
            )
            await tx.update(
                Entity.DRIVERS,
                driver_id,
                {"status": DriverStatus.ON_TRIP.value, "current_trip_id": trip["id"]},
                expect={"status": DriverStatus.ON_DUTY.value},
            )
            return trip

        try:
            trip = await self._store.transaction(apply)
        except StoreConflict as exc:
            error = _conflict_error(exc, {Entity.VEHICLES: VehicleUnavailable, Entity.DRIVERS: DriverUnavailable})
            if error is None:
                raise
            logger.info("dispatch vehicle=%s driver=%s lost a concurrent update", vehicle_id, driver_id)
            raise error from exc
        except DispatchError as exc:
            logger.info(
                "dispatch vehicle=%s driver=%s rejected: %s", vehicle_id, driver_id, type(exc).__name__
            )
            raise

        logger.info(
            "trip %s dispatched: vehicle=%s driver=%s cargo=%s start_odometer=%s",
            trip["id"], vehicle_id, driver_id, cargo_weight, trip["start_odometer"],
        )
        return trip

    async def complete(self, trip_id: Any, end_odometer: float) -> Record:
        async def apply(tx: RecordAccess) -> Record:
            trip = await _load(tx, Entity.TRIPS, trip_id, InvalidTripState)
            try:
                state = trip_state(trip)
            except ValueError as exc:
                raise InvalidTripState() from exc
            if not isinstance(state, Dispatched):
                raise InvalidTripState()
            if not is_finite_number(end_odometer) or end_odometer <= state.start_odometer:
                raise InvalidOdometerReading()

            # trip first: a second completion racing this one conflicts here
            completed = await tx.update(
                Entity.TRIPS,
                trip_id,
                {"status": TripStatus.COMPLETED.value, "end_odometer": end_odometer},
                expect={"status": TripStatus.DISPATCHED.value},
            )
            await tx.update(
                Entity.VEHICLES,
                state.vehicle_id,
                {"status": VehicleStatus.AVAILABLE.value, "odometer": end_odometer, "current_trip_id": None},
                expect={"status": VehicleStatus.ON_TRIP.value, "current_trip_id": trip_id},
            )
            await tx.update(
                Entity.DRIVERS,
                state.driver_id,
                {"status": DriverStatus.ON_DUTY.value, "current_trip_id": None},
                expect={"status": DriverStatus.ON_TRIP.value, "current_trip_id": trip_id},
            )
            return completed

        try:
            trip = await self._store.transaction(apply)
        except StoreConflict as exc:
            error = _conflict_error(exc, {Entity.TRIPS: InvalidTripState})
            if error is None:
                raise
            logger.info("complete trip=%s lost a concurrent update", trip_id)
            raise error from exc
        except DispatchError as exc:
            logger.info("complete trip=%s rejected: %s", trip_id, type(exc).__name__)
            raise

        logger.info(
            "trip %s completed: vehicle=%s driver=%s end_odometer=%s",
            trip_id, trip["vehicle_id"], trip["driver_id"], end_odometer,
        )
        return trip


async def _load(tx: RecordAccess, entity: Entity, record_id: Any, missing: type[DispatchError]) -> Record:
    try:
        return await tx.get(entity, record_id)
    except NotFound as exc:
        raise missing() from exc


def _conflict_error(exc: StoreConflict, mapping: dict) -> DispatchError | None:
    error_type = mapping.get(exc.entity)
    return error_type() if error_type else None
