from datetime import datetime
from typing import Dict, List, Optional, TypedDict

from portal_chat.models.message import SenderType


class ParticipantDocument(TypedDict):
    id: str
    name: str
    type: SenderType


class LastMessageDocument(TypedDict):
    body: str
    timestamp: datetime
    sender_id: str


class ConversationDocument(TypedDict, total=False):
    _id: str
    participants: List[ParticipantDocument]
    last_message: Optional[LastMessageDocument]
    # per-role unread counters (viewer role -> count of unread messages from the other role)
    unread_counters: Dict[str, int]
    is_important: bool
    is_muted: bool
    tags: List[str]
    created_at: datetime
    # only on listing views, resolved for the viewing role
    unread_count: int
