from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()


@router.websocket("/ws/trips")
async def trips_ws(ws: WebSocket):
    feed = ws.app.state.feed
    await feed.subscribe(ws)
    try:
        while True:
            # keep connection alive; client can send pings
            await ws.receive_text()
    except WebSocketDisconnect:
        feed.unsubscribe(ws)
