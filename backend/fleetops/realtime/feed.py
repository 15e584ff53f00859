import logging
from typing import Set

from fastapi import WebSocket

from fleetops.schemas.trip import TripOut

logger = logging.getLogger(__name__)


class TripFeed:
    """Pushes committed trip transitions to every connected websocket."""

    def __init__(self):
        self.sockets: Set[WebSocket] = set()

    async def subscribe(self, ws: WebSocket):
        await ws.accept()
        self.sockets.add(ws)

    def unsubscribe(self, ws: WebSocket):
        self.sockets.discard(ws)

    async def publish(self, event: str, trip: dict):
        message = {
            "event": event,
            "trip": TripOut.model_validate(trip).model_dump(mode="json", by_alias=True),
        }
        for ws in list(self.sockets):
            try:
                await ws.send_json(message)
            except Exception:
                logger.debug("dropping dead trip feed socket")
                self.unsubscribe(ws)
