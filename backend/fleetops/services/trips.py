from fleetops.db.store import DESC, Entity, Record, Store

TRIP_LIST_LIMIT = 200


async def _by_id(store: Store, entity: Entity, ids) -> dict:
    if not ids:
        return {}
    rows = await store.find(entity, {"id": {"$in": sorted(ids)}})
    return {row["id"]: row for row in rows}


async def attach_assets(store: Store, trips: list[Record]) -> list[Record]:
    """Embed each trip's vehicle and driver records under ``vehicle``/``driver``."""
    vehicles = await _by_id(store, Entity.VEHICLES, {t["vehicle_id"] for t in trips})
    drivers = await _by_id(store, Entity.DRIVERS, {t["driver_id"] for t in trips})
    return [
        {**t, "vehicle": vehicles.get(t["vehicle_id"]), "driver": drivers.get(t["driver_id"])}
        for t in trips
    ]


async def list_trips(store: Store, limit: int = TRIP_LIST_LIMIT) -> list[Record]:
    trips = await store.find(Entity.TRIPS, sort=[("created_at", DESC), ("id", DESC)], limit=limit)
    return await attach_assets(store, trips)


async def get_trip(store: Store, trip_id: int) -> Record:
    trip = await store.get(Entity.TRIPS, trip_id)
    return (await attach_assets(store, [trip]))[0]
