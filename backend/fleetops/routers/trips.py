from typing import List

from fastapi import APIRouter, Depends

from fleetops.auth.deps import get_current_user, require_roles
from fleetops.db.store import Store
from fleetops.deps import get_engine, get_feed, get_store
from fleetops.dispatch.engine import DispatchEngine
from fleetops.realtime.feed import TripFeed
from fleetops.schemas.trip import CompleteIn, DispatchIn, TripDetailOut, TripOut
from fleetops.schemas.user import Role
from fleetops.services import trips as trip_service

router = APIRouter(prefix="/trips", tags=["trips"])

can_dispatch = require_roles(Role.MANAGER, Role.DISPATCHER)


@router.get("", response_model=List[TripDetailOut])
async def list_trips(user=Depends(get_current_user), store: Store = Depends(get_store)):
    return await trip_service.list_trips(store)


@router.get("/{trip_id}", response_model=TripDetailOut)
async def get_trip(trip_id: int, user=Depends(get_current_user), store: Store = Depends(get_store)):
    return await trip_service.get_trip(store, trip_id)


@router.post("/dispatch", response_model=TripOut)
async def dispatch_trip(
    body: DispatchIn,
    user=Depends(can_dispatch),
    engine: DispatchEngine = Depends(get_engine),
    feed: TripFeed = Depends(get_feed),
):
    trip = await engine.dispatch(body.vehicle_id, body.driver_id, body.cargo_weight)
    await feed.publish("trip.dispatched", trip)
    return trip


@router.post("/{trip_id}/complete", response_model=TripOut)
async def complete_trip(
    trip_id: int,
    body: CompleteIn,
    user=Depends(can_dispatch),
    engine: DispatchEngine = Depends(get_engine),
    feed: TripFeed = Depends(get_feed),
):
    trip = await engine.complete(trip_id, body.end_odometer)
    await feed.publish("trip.completed", trip)
    return trip
