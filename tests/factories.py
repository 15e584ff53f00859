import itertools
from datetime import datetime, timezone

from fleetops.db.store import Entity, RecordAccess, StoreTransactionFailed
from fleetops.db.memory import MemoryStore

_plates = itertools.count(1001)


async def add_vehicle(store, **overrides):
    doc = {
        "name": "Volvo FH16",
        "license_plate": f"V-{next(_plates)}",
        "max_load_capacity": 20000.0,
        "odometer": 15000.0,
        "status": "AVAILABLE",
        "current_trip_id": None,
    }
    doc.update(overrides)
    return await store.create(Entity.VEHICLES, doc)


async def add_driver(store, **overrides):
    doc = {
        "name": "John Doe",
        "license_type": "CDL-A",
        "license_expiry": datetime(2030, 1, 1, tzinfo=timezone.utc),
        "safety_score": 100.0,
        "status": "ON_DUTY",
        "current_trip_id": None,
    }
    doc.update(overrides)
    return await store.create(Entity.DRIVERS, doc)


async def snapshot(store):
    return {entity: await store.find(entity) for entity in Entity}


class _FailingWrites(RecordAccess):
    def __init__(self, tx, entity, error):
        self._tx = tx
        self._entity = entity
        self._error = error

    async def get(self, entity, record_id):
        return await self._tx.get(entity, record_id)

    async def create(self, entity, fields):
        return await self._tx.create(entity, fields)

    async def update(self, entity, record_id, fields, *, expect=None):
        if entity == self._entity:
            raise self._error(entity, record_id)
        return await self._tx.update(entity, record_id, fields, expect=expect)


class FailingStore(MemoryStore):
    """MemoryStore whose transactional updates of one entity type blow up."""

    def __init__(self, entity, error=lambda entity, record_id: StoreTransactionFailed("write failed")):
        super().__init__()
        self.entity = entity
        self.error = error

    async def transaction(self, fn):
        return await super().transaction(lambda tx: fn(_FailingWrites(tx, self.entity, self.error)))
