from fastapi import Request

from fleetops.db.store import Store
from fleetops.dispatch.engine import DispatchEngine
from fleetops.realtime.feed import TripFeed


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_engine(request: Request) -> DispatchEngine:
    return request.app.state.engine


def get_feed(request: Request) -> TripFeed:
    return request.app.state.feed
