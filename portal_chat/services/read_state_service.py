import logging

from portal_chat.models.message import MessageStatus
from portal_chat.repositories.conversation_repository import ConversationRepository, installer_of
from portal_chat.repositories.message_repository import MessageRepository
from portal_chat.utils.event_hub import EventHub


logger = logging.getLogger(__name__)


class ReadStateService:
    """Moves messages along ``sent -> delivered -> read`` and keeps unread counters in step."""

    def __init__(self, message_repo: MessageRepository, conversation_repo: ConversationRepository, hub: EventHub) -> None:
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._hub = hub

    def mark_delivered(self, conversation_id: str, message_id: str) -> bool:
        changed = self._message_repo.set_status(
            conversation_id, lambda m: m["_id"] == message_id, MessageStatus.DELIVERED
        )
        return bool(changed)

    async def mark_as_read(self, conversation_id: str, viewer_type: str) -> int:
        """Mark every message from the other role as read for ``viewer_type``.

        Returns how many messages changed status; unknown conversations yield 0.
        """
        conversation = self._conversation_repo.get(conversation_id)
        if conversation is None:
            return 0
        changed = self._message_repo.set_status(
            conversation_id, lambda m: m["sender_type"] != viewer_type, MessageStatus.READ
        )
        self._conversation_repo.mark_read(conversation_id, viewer_type)
        if self._message_repo.dirty:
            await self._message_repo.save()
        if self._conversation_repo.dirty:
            await self._conversation_repo.save()

        installer = installer_of(conversation)
        logger.debug("%s read %d messages in %s", viewer_type, len(changed), conversation_id)
        await self._hub.emit(
            "messages_read",
            {
                "conversation_id": conversation_id,
                "installer_id": installer["id"] if installer else None,
                "viewer_type": viewer_type,
                "message_ids": [m["_id"] for m in changed],
            },
        )
        return len(changed)
