from datetime import datetime
from typing import Any, Dict, Literal, TypedDict


NotificationType = Literal[
    "new_message",
    "payment_request",
    "payment_comment",
    "serial_submission",
    "new_installer",
]


class NotificationDocument(TypedDict, total=False):
    _id: str
    recipient_type: Literal["admin"]
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any]
    read: bool
    created_at: datetime
