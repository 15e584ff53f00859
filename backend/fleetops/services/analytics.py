from fleetops.db.store import Entity, Store
from fleetops.schemas.fleet import VehicleStatus
from fleetops.schemas.trip import TripStatus


async def dashboard_kpis(store: Store) -> dict:
    active_fleet = await store.count(Entity.VEHICLES, {"status": VehicleStatus.ON_TRIP.value})
    in_shop = await store.count(Entity.VEHICLES, {"status": VehicleStatus.IN_SHOP.value})
    total_vehicles = await store.count(Entity.VEHICLES)
    pending_cargo = await store.total(Entity.TRIPS, "cargo_weight", {"status": TripStatus.DRAFT.value})

    return {
        "active_fleet": active_fleet,
        "in_shop": in_shop,
        "utilization_rate": (active_fleet / total_vehicles) * 100 if total_vehicles else 0.0,
        "pending_cargo": pending_cargo,
    }
