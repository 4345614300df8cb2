"""Wires the chat engine together around one store and one event hub."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from portal_chat.core.config import Settings, get_settings
from portal_chat.database.store import DocumentStore
from portal_chat.repositories.conversation_repository import ConversationRepository
from portal_chat.repositories.message_repository import MessageRepository
from portal_chat.repositories.notification_repository import NotificationRepository
from portal_chat.services.chat_service import ChatService
from portal_chat.services.notification_service import NotificationService
from portal_chat.services.read_state_service import ReadStateService
from portal_chat.utils.event_hub import EventHub
from portal_chat.utils.ids import utcnow


@dataclass
class ChatEngine:

    store: DocumentStore
    hub: EventHub
    messages: MessageRepository
    conversations: ConversationRepository
    notification_repo: NotificationRepository
    read_state: ReadStateService
    notifications: NotificationService
    chat: ChatService

    async def load(self) -> None:
        await self.messages.load()
        await self.conversations.load()
        await self.notification_repo.load()


def build_engine(
    store: DocumentStore,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utcnow,
    hub: Optional[EventHub] = None,
) -> ChatEngine:
    settings = settings or get_settings()
    hub = hub or EventHub()
    messages = MessageRepository(store)
    conversations = ConversationRepository(store, messages, clock=clock)
    notification_repo = NotificationRepository(store)
    read_state = ReadStateService(messages, conversations, hub)
    notifications = NotificationService(
        notification_repo, hub, clock=clock, preview_length=settings.notification_preview_length
    )
    chat = ChatService(
        messages,
        conversations,
        read_state,
        notifications,
        hub,
        admin_pool={"id": settings.admin_pool_id, "name": settings.admin_pool_name, "type": "admin"},
        send_latency=settings.send_latency_seconds,
        clock=clock,
    )
    return ChatEngine(
        store=store,
        hub=hub,
        messages=messages,
        conversations=conversations,
        notification_repo=notification_repo,
        read_state=read_state,
        notifications=notifications,
        chat=chat,
    )
