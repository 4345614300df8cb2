from typing import Literal, Optional

from fastapi import Depends, Header, Request

from portal_chat.engine import ChatEngine
from portal_chat.models.conversation import ParticipantDocument
from portal_chat.services.chat_service import ChatService
from portal_chat.services.notification_service import NotificationService


def get_engine(request: Request) -> ChatEngine:
    return request.app.state.engine


def get_chat_service(engine: ChatEngine = Depends(get_engine)) -> ChatService:
    return engine.chat


def get_notification_service(engine: ChatEngine = Depends(get_engine)) -> NotificationService:
    return engine.notifications


def get_current_viewer(
    x_viewer_type: Literal["installer", "admin"] = Header(...),
    x_viewer_id: str = Header(..., min_length=1),
    x_viewer_name: Optional[str] = Header(None),
) -> ParticipantDocument:
    # authentication happens upstream; the gateway forwards who is asking
    return {"id": x_viewer_id, "name": x_viewer_name or x_viewer_id, "type": x_viewer_type}
