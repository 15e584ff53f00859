from typing import List

from fastapi import APIRouter, Depends

from fleetops.auth.deps import get_current_user, require_roles
from fleetops.db.store import Entity, Store
from fleetops.deps import get_store
from fleetops.schemas.fleet import DriverCreate, DriverOut, DriverStatusUpdate
from fleetops.schemas.user import Role
from fleetops.services import fleet

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.get("", response_model=List[DriverOut])
async def list_drivers(user=Depends(get_current_user), store: Store = Depends(get_store)):
    return await store.find(Entity.DRIVERS, limit=500)


@router.post("", response_model=DriverOut)
async def create_driver(
    body: DriverCreate,
    user=Depends(require_roles(Role.MANAGER)),
    store: Store = Depends(get_store),
):
    return await fleet.create_driver(store, body)


@router.patch("/{driver_id}/status", response_model=DriverOut)
async def update_driver_status(
    driver_id: int,
    body: DriverStatusUpdate,
    user=Depends(require_roles(Role.MANAGER, Role.SAFETY_OFFICER)),
    store: Store = Depends(get_store),
):
    return await fleet.set_driver_status(store, driver_id, body.status)
