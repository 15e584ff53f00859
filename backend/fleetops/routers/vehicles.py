from typing import List

from fastapi import APIRouter, Depends

from fleetops.auth.deps import get_current_user, require_roles
from fleetops.db.store import Entity, Store
from fleetops.deps import get_store
from fleetops.schemas.fleet import VehicleCreate, VehicleOut, VehicleStatusUpdate
from fleetops.schemas.user import Role
from fleetops.services import fleet

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=List[VehicleOut])
async def list_vehicles(user=Depends(get_current_user), store: Store = Depends(get_store)):
    return await store.find(Entity.VEHICLES, limit=500)


@router.get("/{vehicle_id}", response_model=VehicleOut)
async def get_vehicle(vehicle_id: int, user=Depends(get_current_user), store: Store = Depends(get_store)):
    return await store.get(Entity.VEHICLES, vehicle_id)


@router.post("", response_model=VehicleOut)
async def create_vehicle(
    body: VehicleCreate,
    user=Depends(require_roles(Role.MANAGER)),
    store: Store = Depends(get_store),
):
    return await fleet.create_vehicle(store, body)


@router.patch("/{vehicle_id}/status", response_model=VehicleOut)
async def update_vehicle_status(
    vehicle_id: int,
    body: VehicleStatusUpdate,
    user=Depends(require_roles(Role.MANAGER)),
    store: Store = Depends(get_store),
):
    return await fleet.set_vehicle_status(store, vehicle_id, body.status)
