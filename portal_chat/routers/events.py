from fastapi import APIRouter, WebSocket, WebSocketDisconnect


router = APIRouter(prefix="/events", tags=["chat"])

VIEWER_TYPES = ("admin", "installer")


@router.websocket("/ws")
async def events_socket(websocket: WebSocket):
    # ?viewer_type=admin|installer&viewer_id=...
    viewer_type = websocket.query_params.get("viewer_type")
    viewer_id = websocket.query_params.get("viewer_id")
    if viewer_type not in VIEWER_TYPES or not viewer_id:
        await websocket.close(code=4400)
        return

    manager = websocket.app.state.connections
    viewer = (viewer_type, viewer_id)
    await manager.connect(viewer, websocket)
    try:
        while True:
            # clients only listen; anything they send is a keepalive
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(viewer, websocket)
