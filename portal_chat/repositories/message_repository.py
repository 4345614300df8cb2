"""Ordered, append-only message lists keyed by conversation id.

Mutations are synchronous and only touch the in-memory lists; ``save`` writes
the whole collection back to the document store afterwards.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from portal_chat.database.store import MESSAGES_KEY, DocumentStore
from portal_chat.models.message import MessageDocument, MessageStatus
from portal_chat.utils.ids import new_id, utcnow


logger = logging.getLogger(__name__)


def _sort_key(message: MessageDocument) -> Tuple[datetime, str]:
    return message["timestamp"], message["_id"]


class MessageRepository:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._messages: Dict[str, List[MessageDocument]] = {}
        # message id -> conversation id, across every conversation
        self._owners: Dict[str, str] = {}
        self.dirty = False

    async def load(self) -> None:
        self._messages = await self._store.load(MESSAGES_KEY) or {}
        for items in self._messages.values():
            items.sort(key=_sort_key)
        self._reindex()
        self.dirty = False

    async def save(self) -> None:
        await self._store.save(MESSAGES_KEY, self._messages)
        self.dirty = False

    def _reindex(self) -> None:
        self._owners = {
            message["_id"]: conversation_id
            for conversation_id, items in self._messages.items()
            for message in items
        }

    def _find(self, conversation_id: str, message_id: str) -> Optional[MessageDocument]:
        for message in self._messages.get(conversation_id, []):
            if message["_id"] == message_id:
                return message
        return None

    def append(self, conversation_id: str, message: Dict[str, Any]) -> Tuple[MessageDocument, bool]:
        """Store ``message`` and return ``(stored, created)``.

        Re-appending an id already present in the conversation is a no-op that
        returns the existing record with ``created=False``. Ids are unique across
        conversations: reusing one stored elsewhere raises ``ValueError``.
        """
        message_id = message.get("_id")
        if message_id:
            owner = self._owners.get(message_id)
            if owner is not None and owner != conversation_id:
                raise ValueError(f"Message id {message_id} is already used in another conversation")
            existing = self._find(conversation_id, message_id)
            if existing is not None:
                logger.debug("Message %s already stored in %s", message_id, conversation_id)
                return dict(existing), False

        doc: MessageDocument = {
            "kind": "text",
            "attachments": [],
            **message,
            "_id": message_id or new_id(),
            "conversation_id": conversation_id,
            "status": MessageStatus.SENT.value,
        }
        doc.setdefault("timestamp", utcnow())
        items = self._messages.setdefault(conversation_id, [])
        items.append(doc)
        items.sort(key=_sort_key)
        self._owners[doc["_id"]] = conversation_id
        self.dirty = True
        return dict(doc), True

    def get(self, conversation_id: str, message_id: str) -> Optional[MessageDocument]:
        message = self._find(conversation_id, message_id)
        return dict(message) if message is not None else None

    def list(self, conversation_id: str) -> List[MessageDocument]:
        return [dict(m) for m in self._messages.get(conversation_id, [])]

    def latest(self, conversation_id: str) -> Optional[MessageDocument]:
        items = self._messages.get(conversation_id)
        return dict(items[-1]) if items else None

    def count_unread(self, conversation_id: str, viewer_type: str) -> int:
        """Messages from the other role that ``viewer_type`` has not read yet."""
        return sum(
            1
            for m in self._messages.get(conversation_id, [])
            if m["sender_type"] != viewer_type and m["status"] != MessageStatus.READ.value
        )

    def set_status(
        self,
        conversation_id: str,
        predicate: Callable[[MessageDocument], bool],
        new_status: MessageStatus,
    ) -> List[MessageDocument]:
        """Advance matching messages to ``new_status``; returns the ones that moved.

        Status only moves forward, so messages already at or past ``new_status``
        are left alone.
        """
        changed: List[MessageDocument] = []
        for message in self._messages.get(conversation_id, []):
            if not predicate(message):
                continue
            if MessageStatus(message["status"]).rank >= new_status.rank:
                continue
            message["status"] = new_status.value
            changed.append(dict(message))
        if changed:
            self.dirty = True
        return changed

    def delete_conversation(self, conversation_id: str) -> int:
        removed = self._messages.pop(conversation_id, [])
        for message in removed:
            self._owners.pop(message["_id"], None)
        if removed:
            self.dirty = True
        return len(removed)

    def merge(self, source_id: str, target_id: str) -> int:
        """Move every message of ``source_id`` into ``target_id``."""
        source = self._messages.pop(source_id, [])
        if not source:
            return 0
        target = self._messages.setdefault(target_id, [])
        known = {m["_id"] for m in target}
        moved = 0
        for message in source:
            self._owners[message["_id"]] = target_id
            if message["_id"] in known:
                continue
            message["conversation_id"] = target_id
            target.append(message)
            moved += 1
        target.sort(key=_sort_key)
        self.dirty = True
        return moved
