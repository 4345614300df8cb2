import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from portal_chat.models.conversation import ConversationDocument, ParticipantDocument
from portal_chat.models.message import MessageDocument
from portal_chat.repositories.conversation_repository import ConversationRepository, installer_of, other_role
from portal_chat.repositories.message_repository import MessageRepository
from portal_chat.schemas.chat import ConversationExport
from portal_chat.services.notification_service import NotificationService
from portal_chat.services.read_state_service import ReadStateService
from portal_chat.utils.event_hub import EventHub
from portal_chat.utils.ids import utcnow


logger = logging.getLogger(__name__)


class ChatService:

    def __init__(
        self,
        message_repo: MessageRepository,
        conversation_repo: ConversationRepository,
        read_state: ReadStateService,
        notifications: NotificationService,
        hub: EventHub,
        admin_pool: ParticipantDocument,
        send_latency: float = 0.5,
        clock=utcnow,
    ) -> None:
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._read_state = read_state
        self._notifications = notifications
        self._hub = hub
        self._admin_pool = admin_pool
        self._send_latency = send_latency
        self._clock = clock

    def admin_pool(self) -> ParticipantDocument:
        return dict(self._admin_pool)

    async def _persist(self) -> None:
        if self._message_repo.dirty:
            await self._message_repo.save()
        if self._conversation_repo.dirty:
            await self._conversation_repo.save()

    async def create_conversation(self, installer: ParticipantDocument) -> ConversationDocument:
        conversation = self._conversation_repo.find_or_create(installer, self._admin_pool)
        await self._persist()
        return conversation

    async def start_conversation(
        self, installer: ParticipantDocument, body: str, sender: Optional[ParticipantDocument] = None
    ) -> Tuple[ConversationDocument, Optional[MessageDocument]]:
        """Open (or reuse) the installer's conversation and post its first message.

        ``sender`` defaults to the installer; pass an admin participant when the
        admin side starts the chat.
        """
        conversation = self._conversation_repo.find_or_create(installer, self._admin_pool)
        message = await self.send_message(conversation["_id"], sender or installer, body)
        return self._conversation_repo.get(conversation["_id"]) or conversation, message

    def _resolve_conversation(self, conversation_id: str, sender: ParticipantDocument) -> Optional[str]:
        if self._conversation_repo.get(conversation_id) is not None:
            return conversation_id
        if sender["type"] != "installer":
            return None
        existing = self._conversation_repo.find_by_installer(sender["id"])
        if existing is not None:
            logger.info(
                "Redirecting message for unknown conversation %s to %s of installer %s",
                conversation_id,
                existing["_id"],
                sender["id"],
            )
            return existing["_id"]
        created = self._conversation_repo.find_or_create(sender, self._admin_pool, conversation_id=conversation_id)
        return created["_id"]

    async def send_message(
        self,
        conversation_id: str,
        sender: ParticipantDocument,
        content: str,
        kind: str = "text",
        attachments: Optional[List[Dict[str, Any]]] = None,
        message_id: Optional[str] = None,
    ) -> Optional[MessageDocument]:
        """Store a message, update the conversation and notify listeners.

        Returns the stored message once delivered, or ``None`` when an admin
        writes to a conversation that does not exist or the conversation is
        deleted before delivery. Raises ``ValueError`` for a blank body or a
        ``message_id`` already used in another conversation.
        """
        if not content or not content.strip():
            raise ValueError("Message content cannot be empty")

        # everything up to the first await runs as one step on the event loop
        resolved_id = self._resolve_conversation(conversation_id, sender)
        if resolved_id is None:
            return None
        draft: Dict[str, Any] = {
            "sender_id": sender["id"],
            "sender_name": sender["name"],
            "sender_type": sender["type"],
            "body": content,
            "timestamp": self._clock(),
            "kind": kind,
            "attachments": list(attachments or []),
        }
        if message_id:
            draft["_id"] = message_id
        message, created = self._message_repo.append(resolved_id, draft)
        if not created:
            return message
        self._conversation_repo.record_message(resolved_id, message)
        await self._notifications.on_message_sent(message)
        await self._persist()

        # simulated network acknowledgment
        await asyncio.sleep(self._send_latency)
        conversation = self._conversation_repo.get(resolved_id)
        if conversation is None:
            logger.info("Conversation %s was deleted before message %s was delivered", resolved_id, message["_id"])
            return None
        self._read_state.mark_delivered(resolved_id, message["_id"])
        await self._persist()
        message = self._message_repo.get(resolved_id, message["_id"]) or message

        installer = installer_of(conversation)
        payload = {
            "conversation_id": resolved_id,
            "installer_id": installer["id"] if installer else None,
            "recipient_type": other_role(message["sender_type"]),
            "message": message,
        }
        await self._hub.emit("message_sent", payload)
        await self._hub.emit("message_received", payload)
        return message

    def get_conversation(self, conversation_id: str) -> Optional[ConversationDocument]:
        return self._conversation_repo.get(conversation_id)

    def get_messages(self, conversation_id: str) -> List[MessageDocument]:
        return self._message_repo.list(conversation_id)

    async def list_conversations(self, viewer_type: str, viewer_id: str) -> List[ConversationDocument]:
        conversations = self._conversation_repo.list_for(viewer_type, viewer_id)
        # listing may have merged duplicates or corrected drifted counters
        await self._persist()
        return conversations

    async def mark_as_read(self, conversation_id: str, viewer_type: str) -> int:
        return await self._read_state.mark_as_read(conversation_id, viewer_type)

    async def delete_conversation(self, conversation_id: str) -> bool:
        conversation = self._conversation_repo.get(conversation_id)
        if conversation is None or not self._conversation_repo.delete(conversation_id):
            return False
        await self._persist()
        installer = installer_of(conversation)
        await self._hub.emit(
            "conversation_deleted",
            {"conversation_id": conversation_id, "installer_id": installer["id"] if installer else None},
        )
        return True

    async def toggle_important(self, conversation_id: str) -> Optional[bool]:
        value = self._conversation_repo.set_flag(conversation_id, "is_important")
        await self._persist()
        return value

    async def toggle_mute(self, conversation_id: str) -> Optional[bool]:
        value = self._conversation_repo.set_flag(conversation_id, "is_muted")
        await self._persist()
        return value

    async def add_tags(self, conversation_id: str, tags: List[str]) -> Optional[List[str]]:
        result = self._conversation_repo.set_tags(conversation_id, tags, "add")
        await self._persist()
        return result

    async def remove_tags(self, conversation_id: str, tags: List[str]) -> Optional[List[str]]:
        result = self._conversation_repo.set_tags(conversation_id, tags, "remove")
        await self._persist()
        return result

    def export_conversation(self, conversation_id: str, exported_at: Optional[datetime] = None) -> Optional[ConversationExport]:
        conversation = self._conversation_repo.get(conversation_id)
        if conversation is None:
            return None
        return ConversationExport(
            conversation={
                "id": conversation["_id"],
                "participants": conversation["participants"],
                "created_at": conversation["created_at"],
                "tags": conversation.get("tags", []),
                "is_important": conversation.get("is_important", False),
            },
            messages=[
                {
                    "id": m["_id"],
                    "sender_name": m["sender_name"],
                    "body": m["body"],
                    "timestamp": m["timestamp"],
                    "kind": m.get("kind", "text"),
                }
                for m in self._message_repo.list(conversation_id)
            ],
            exported_at=exported_at or self._clock(),
        )
