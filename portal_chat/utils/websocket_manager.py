import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from portal_chat.utils.event_hub import EventHub


logger = logging.getLogger(__name__)

Viewer = Tuple[str, str]

# events only the admin side should see
ADMIN_ONLY_EVENTS = ("notification_added", "notification_read", "all_notifications_read")
CONVERSATION_EVENTS = ("message_sent", "message_received", "messages_read", "conversation_deleted")


class ConnectionManager:

    def __init__(self) -> None:
        self.active_connections: Dict[Viewer, List[WebSocket]] = {}

    async def connect(self, viewer: Viewer, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.setdefault(viewer, []).append(websocket)

    def disconnect(self, viewer: Viewer, websocket: WebSocket) -> None:
        if viewer in self.active_connections:
            try:
                self.active_connections[viewer].remove(websocket)
            except ValueError:
                pass
            if not self.active_connections[viewer]:
                del self.active_connections[viewer]

    def recipients(self, admins: bool, installer_id: Optional[str]) -> List[Tuple[Viewer, WebSocket]]:
        sockets: List[Tuple[Viewer, WebSocket]] = []
        for viewer, conns in self.active_connections.items():
            viewer_type, viewer_id = viewer
            if (viewer_type == "admin" and admins) or (viewer_type == "installer" and viewer_id == installer_id):
                sockets.extend((viewer, conn) for conn in conns)
        return sockets

    async def send(self, sockets: List[Tuple[Viewer, WebSocket]], message: str) -> int:
        """Send to each socket; a socket that fails is dropped and the rest still receive.

        Returns how many sockets were reached.
        """
        sent = 0
        for viewer, conn in list(sockets):
            try:
                await conn.send_text(message)
            except Exception:
                logger.warning("Dropping websocket of %s:%s after a failed send", viewer[0], viewer[1], exc_info=True)
                self.disconnect(viewer, conn)
                continue
            sent += 1
        return sent


class EventForwarder:
    """Pushes hub events to the WebSocket connections allowed to see them."""

    def __init__(self, hub: EventHub, manager: ConnectionManager) -> None:
        self._hub = hub
        self._manager = manager
        self._handlers: Dict[str, Any] = {}

    def start(self) -> None:
        for event in CONVERSATION_EVENTS + ADMIN_ONLY_EVENTS:
            handler = self._make_handler(event)
            self._handlers[event] = handler
            self._hub.on(event, handler)

    def stop(self) -> None:
        for event, handler in self._handlers.items():
            self._hub.off(event, handler)
        self._handlers.clear()

    def _make_handler(self, event: str):
        async def forward(payload: Any) -> None:
            payload = payload or {}
            if event in ADMIN_ONLY_EVENTS:
                sockets = self._manager.recipients(admins=True, installer_id=None)
            else:
                sockets = self._manager.recipients(admins=True, installer_id=payload.get("installer_id"))
            if not sockets:
                return
            text = json.dumps({"type": event, "data": jsonable_encoder(payload)})
            await self._manager.send(sockets, text)

        return forward
