"""Seed the store with the role users and a first vehicle/driver pair."""

import asyncio
import logging
from datetime import datetime, timezone

import click
from dotenv import load_dotenv

from fleetops.core.config import get_settings
from fleetops.core.logging import configure_logging
from fleetops.core.security import hash_password
from fleetops.db.store import Entity, Store
from fleetops.schemas.fleet import DriverCreate, DriverStatus, VehicleCreate, VehicleStatus
from fleetops.schemas.user import Role
from fleetops.services import fleet

logger = logging.getLogger(__name__)

SEED_USERS = [
    ("manager@fleet.com", Role.MANAGER),
    ("dispatcher@fleet.com", Role.DISPATCHER),
    ("safety@fleet.com", Role.SAFETY_OFFICER),
    ("finance@fleet.com", Role.FINANCIAL_ANALYST),
]


async def seed(store: Store, password: str = "admin123") -> dict:
    created_users = 0
    for email, role in SEED_USERS:
        if await store.find_one(Entity.USERS, {"email": email}):
            continue
        await store.create(
            Entity.USERS,
            {"email": email, "password_hash": hash_password(password), "role": role.value},
        )
        created_users += 1

    vehicle = await store.find_one(Entity.VEHICLES, {"license_plate": "V-1001"}) or await fleet.create_vehicle(
        store,
        VehicleCreate(
            name="Volvo FH16",
            license_plate="V-1001",
            max_load_capacity=20000,
            odometer=15000,
            status=VehicleStatus.AVAILABLE,
        ),
    )
    driver = await store.find_one(Entity.DRIVERS, {"name": "John Doe"}) or await fleet.create_driver(
        store,
        DriverCreate(
            name="John Doe",
            license_type="CDL-A",
            license_expiry=datetime(2030, 1, 1, tzinfo=timezone.utc),
            status=DriverStatus.ON_DUTY,
        ),
    )
    return {"users": created_users, "vehicle": vehicle, "driver": driver}


async def _run(password: str) -> dict:
    from fleetops.main import build_store

    store = build_store(get_settings())
    try:
        await store.ensure_indexes()
        return await seed(store, password)
    finally:
        await store.close()


@click.command()
@click.option("--password", default="admin123", show_default=True, help="Password for the seeded users.")
def main(password: str) -> None:
    """Create the role users, one vehicle and one driver."""
    load_dotenv()
    configure_logging(get_settings().log_level)
    result = asyncio.run(_run(password))
    click.echo(
        f"Seeding complete: {result['users']} users, "
        f"vehicle {result['vehicle']['id']}, driver {result['driver']['id']}"
    )


if __name__ == "__main__":
    main()
