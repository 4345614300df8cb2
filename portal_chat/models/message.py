from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, TypedDict


SenderType = Literal["installer", "admin"]


class MessageStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {MessageStatus.SENT: 0, MessageStatus.DELIVERED: 1, MessageStatus.READ: 2}


class MessageDocument(TypedDict, total=False):
    _id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    sender_type: SenderType
    body: str
    timestamp: datetime
    # "text", "attachment", ...
    kind: str
    attachments: List[Dict[str, Any]]
    # stored as the MessageStatus value
    status: str
