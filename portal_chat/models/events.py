"""Event names published on the hub and the payload each one carries."""

from typing import List, Literal, Optional, TypedDict, get_args

from portal_chat.models.message import MessageDocument, SenderType
from portal_chat.models.notification import NotificationDocument


EventName = Literal[
    "message_sent",
    "message_received",
    "messages_read",
    "conversation_deleted",
    "notification_added",
    "notification_read",
    "all_notifications_read",
]

EVENT_NAMES = frozenset(get_args(EventName))


class MessageEvent(TypedDict):
    """Payload of ``message_sent`` and ``message_received``."""

    conversation_id: str
    installer_id: Optional[str]
    recipient_type: SenderType
    message: MessageDocument


class MessagesReadEvent(TypedDict):
    conversation_id: str
    installer_id: Optional[str]
    viewer_type: SenderType
    message_ids: List[str]


class ConversationDeletedEvent(TypedDict):
    conversation_id: str
    installer_id: Optional[str]


class NotificationEvent(TypedDict):
    """Payload of ``notification_added`` and ``notification_read``."""

    notification: NotificationDocument


class AllNotificationsReadEvent(TypedDict):
    updated: int
