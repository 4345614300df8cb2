from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, Field, field_validator


class Participant(BaseModel):

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: Literal["installer", "admin"]


class CreateConversationRequest(BaseModel):

    installer: Participant
    message: Optional[str] = Field(default=None, min_length=1)

    @field_validator("installer")
    @classmethod
    def installer_side(cls, value: Participant) -> Participant:
        if value.type != "installer":
            raise ValueError("conversations are opened for an installer participant")
        return value


class SendMessageRequest(BaseModel):

    body: str = Field(min_length=1, max_length=4000)
    kind: str = "text"
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    # client generated id, lets a retried send be deduplicated
    message_id: Optional[str] = None

    @field_validator("body")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message body cannot be blank")
        return value

    @field_validator("message_id")
    @classmethod
    def object_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not ObjectId.is_valid(value):
            raise ValueError("message_id must be a 24 character hex ObjectId")
        return value


class TagsRequest(BaseModel):

    tags: List[str] = Field(min_length=1)
    op: Literal["add", "remove"] = "add"


class ExportedConversation(BaseModel):

    id: str
    participants: List[Participant]
    created_at: datetime
    tags: List[str] = Field(default_factory=list)
    is_important: bool = False


class ExportedMessage(BaseModel):

    id: str
    sender_name: str
    body: str
    timestamp: datetime
    kind: str


class ConversationExport(BaseModel):

    conversation: ExportedConversation
    messages: List[ExportedMessage]
    exported_at: datetime
