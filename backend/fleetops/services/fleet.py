"""Manual fleet edits that must not step on the dispatch engine.

Vehicles and drivers on a trip are owned by ``DispatchEngine``; every status
change made here is guarded on the status that was read, so it cannot land
on top of a dispatch that committed in between.
"""

import logging
from typing import Any

from fleetops.db.store import Entity, Record, Store, StoreConflict
from fleetops.schemas.fleet import DriverCreate, DriverStatus, VehicleCreate, VehicleStatus

logger = logging.getLogger(__name__)


class StatusChangeRejected(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


async def create_vehicle(store: Store, body: VehicleCreate) -> Record:
    doc = body.model_dump()
    doc["license_plate"] = doc["license_plate"].strip().upper()
    doc["current_trip_id"] = None
    vehicle = await store.create(Entity.VEHICLES, doc)
    logger.info("vehicle %s registered (%s)", vehicle["id"], vehicle["license_plate"])
    return vehicle


async def create_driver(store: Store, body: DriverCreate) -> Record:
    doc = body.model_dump()
    doc["current_trip_id"] = None
    driver = await store.create(Entity.DRIVERS, doc)
    logger.info("driver %s registered", driver["id"])
    return driver


async def _set_status(store: Store, entity: Entity, record_id: Any, status: str, on_trip: str) -> Record:
    current = await store.get(entity, record_id)
    label = entity.value[:-1].capitalize()
    if current["status"] == on_trip:
        raise StatusChangeRejected(f"{label} is on a trip")
    try:
        updated = await store.update(entity, record_id, {"status": status}, expect={"status": current["status"]})
    except StoreConflict as exc:
        raise StatusChangeRejected(f"{label} status changed concurrently") from exc
    logger.info("%s %s status %s -> %s", entity.value, record_id, current["status"], status)
    return updated


async def set_vehicle_status(store: Store, vehicle_id: Any, status: VehicleStatus) -> Record:
    return await _set_status(store, Entity.VEHICLES, vehicle_id, VehicleStatus(status).value, VehicleStatus.ON_TRIP.value)


async def set_driver_status(store: Store, driver_id: Any, status: DriverStatus) -> Record:
    return await _set_status(store, Entity.DRIVERS, driver_id, DriverStatus(status).value, DriverStatus.ON_TRIP.value)
