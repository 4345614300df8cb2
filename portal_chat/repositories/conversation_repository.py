"""Conversation registry: one thread per installer, shared admin pool on the other side.

The registry list is kept in display order: important conversations first,
then most recent activity. Preview and unread counters are caches derived
from the message repository and are recomputed on every listing.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Literal, Optional, Tuple

from portal_chat.database.store import CONVERSATIONS_KEY, DocumentStore
from portal_chat.models.conversation import ConversationDocument, LastMessageDocument, ParticipantDocument
from portal_chat.models.message import MessageDocument
from portal_chat.repositories.message_repository import MessageRepository
from portal_chat.utils.ids import new_id, utcnow


logger = logging.getLogger(__name__)

ROLES = ("admin", "installer")
FLAGS = ("is_important", "is_muted")


def other_role(role: str) -> str:
    return "installer" if role == "admin" else "admin"


def installer_of(conversation: ConversationDocument) -> Optional[ParticipantDocument]:
    for participant in conversation.get("participants", []):
        if participant["type"] == "installer":
            return participant
    return None


def _activity_at(conversation: ConversationDocument) -> datetime:
    last = conversation.get("last_message")
    return last["timestamp"] if last else conversation["created_at"]


def _order_key(conversation: ConversationDocument) -> Tuple[bool, datetime]:
    return bool(conversation.get("is_important")), _activity_at(conversation)


def _preview(message: MessageDocument) -> LastMessageDocument:
    return {"body": message["body"], "timestamp": message["timestamp"], "sender_id": message["sender_id"]}


class ConversationRepository:

    def __init__(
        self,
        store: DocumentStore,
        message_repo: MessageRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._message_repo = message_repo
        self._clock = clock
        self._conversations: List[ConversationDocument] = []
        self.dirty = False

    async def load(self) -> None:
        self._conversations = await self._store.load(CONVERSATIONS_KEY) or []
        self.dirty = False

    async def save(self) -> None:
        await self._store.save(CONVERSATIONS_KEY, self._conversations)
        self.dirty = False

    def _find(self, conversation_id: str) -> Optional[ConversationDocument]:
        for conversation in self._conversations:
            if conversation["_id"] == conversation_id:
                return conversation
        return None

    def _find_by_installer(self, installer_id: str) -> Optional[ConversationDocument]:
        for conversation in self._conversations:
            installer = installer_of(conversation)
            if installer and installer["id"] == installer_id:
                return conversation
        return None

    def _sort(self) -> None:
        # stable, so ties keep their current relative order
        self._conversations.sort(key=_order_key, reverse=True)

    def get(self, conversation_id: str) -> Optional[ConversationDocument]:
        conversation = self._find(conversation_id)
        return _copy(conversation) if conversation is not None else None

    def find_by_installer(self, installer_id: str) -> Optional[ConversationDocument]:
        conversation = self._find_by_installer(installer_id)
        return _copy(conversation) if conversation is not None else None

    def order(self) -> List[str]:
        return [c["_id"] for c in self._conversations]

    def find_or_create(
        self,
        installer: ParticipantDocument,
        admin: ParticipantDocument,
        conversation_id: Optional[str] = None,
    ) -> ConversationDocument:
        existing = self._find_by_installer(installer["id"])
        if existing is not None:
            return _copy(existing)

        conversation: ConversationDocument = {
            "_id": conversation_id or new_id(),
            "participants": [dict(installer), dict(admin)],
            "last_message": None,
            "unread_counters": {role: 0 for role in ROLES},
            "is_important": False,
            "is_muted": False,
            "tags": [],
            "created_at": self._clock(),
        }
        self._conversations.insert(0, conversation)
        # pinned conversations stay above the new one
        self._sort()
        self.dirty = True
        logger.info("Created conversation %s for installer %s", conversation["_id"], installer["id"])
        return _copy(conversation)

    def record_message(self, conversation_id: str, message: MessageDocument) -> bool:
        conversation = self._find(conversation_id)
        if conversation is None:
            return False
        # a late message with an older timestamp must not replace a newer preview
        latest = self._message_repo.latest(conversation_id) or message
        conversation["last_message"] = _preview(latest)
        counters = conversation.setdefault("unread_counters", {role: 0 for role in ROLES})
        recipient = other_role(message["sender_type"])
        counters[recipient] = counters.get(recipient, 0) + 1
        self._sort()
        self.dirty = True
        return True

    def mark_read(self, conversation_id: str, viewer_type: str = "admin") -> bool:
        """Zero the viewer's unread counter. Never changes the list order."""
        conversation = self._find(conversation_id)
        if conversation is None:
            return False
        counters = conversation.setdefault("unread_counters", {role: 0 for role in ROLES})
        if counters.get(viewer_type):
            counters[viewer_type] = 0
            self.dirty = True
        return True

    def deduplicate(self) -> int:
        """Collapse conversations sharing an installer into the most recent one.

        Messages of every discarded duplicate are merged into the kept
        conversation. Returns the number of conversations removed.
        """
        self._sort()
        kept: List[ConversationDocument] = []
        by_installer: Dict[str, ConversationDocument] = {}
        removed = 0
        for conversation in self._conversations:
            installer = installer_of(conversation)
            if installer is None:
                kept.append(conversation)
                continue
            survivor = by_installer.get(installer["id"])
            if survivor is None:
                by_installer[installer["id"]] = conversation
                kept.append(conversation)
                continue
            moved = self._message_repo.merge(conversation["_id"], survivor["_id"])
            _merge_attributes(survivor, conversation)
            self._refresh(survivor)
            removed += 1
            logger.info(
                "Merged duplicate conversation %s into %s (%d messages moved)",
                conversation["_id"],
                survivor["_id"],
                moved,
            )
        if removed:
            self._conversations = kept
            self._sort()
            self.dirty = True
        return removed

    def _refresh(self, conversation: ConversationDocument) -> bool:
        """Recompute preview and counters from the stored messages."""
        conversation_id = conversation["_id"]
        latest = self._message_repo.latest(conversation_id)
        last_message = _preview(latest) if latest else None
        counters = {role: self._message_repo.count_unread(conversation_id, role) for role in ROLES}
        changed = conversation.get("last_message") != last_message or conversation.get("unread_counters") != counters
        if changed:
            conversation["last_message"] = last_message
            conversation["unread_counters"] = counters
            self.dirty = True
        return changed

    def list_for(self, viewer_type: Literal["admin", "installer"], viewer_id: str) -> List[ConversationDocument]:
        """Conversations visible to the viewer, each carrying its ``unread_count``."""
        self.deduplicate()
        drifted = [c["_id"] for c in self._conversations if self._refresh(c)]
        if drifted:
            logger.warning("Recomputed stale preview or unread counters for %s", ", ".join(drifted))
            self._sort()

        if viewer_type == "installer":
            visible = [
                c
                for c in self._conversations
                if any(p["id"] == viewer_id and p["type"] == "installer" for p in c.get("participants", []))
            ]
        else:
            visible = self._conversations

        views: List[ConversationDocument] = []
        for conversation in visible:
            view = _copy(conversation)
            view["unread_count"] = conversation.get("unread_counters", {}).get(viewer_type, 0)
            views.append(view)
        return views

    def delete(self, conversation_id: str) -> bool:
        conversation = self._find(conversation_id)
        if conversation is None:
            return False
        self._conversations.remove(conversation)
        removed = self._message_repo.delete_conversation(conversation_id)
        self.dirty = True
        logger.info("Deleted conversation %s and %d messages", conversation_id, removed)
        return True

    def set_flag(self, conversation_id: str, flag: str) -> Optional[bool]:
        """Toggle ``is_important`` or ``is_muted``; returns the new value."""
        if flag not in FLAGS:
            raise ValueError(f"Unknown conversation flag: {flag}")
        conversation = self._find(conversation_id)
        if conversation is None:
            return None
        conversation[flag] = not conversation.get(flag, False)
        if flag == "is_important":
            self._sort()
        self.dirty = True
        return conversation[flag]

    def set_tags(self, conversation_id: str, tags: List[str], op: Literal["add", "remove"]) -> Optional[List[str]]:
        conversation = self._find(conversation_id)
        if conversation is None:
            return None
        current = conversation.setdefault("tags", [])
        if op == "add":
            for tag in tags:
                if tag not in current:
                    current.append(tag)
        elif op == "remove":
            conversation["tags"] = current = [t for t in current if t not in tags]
        else:
            raise ValueError(f"Unknown tag operation: {op}")
        self.dirty = True
        return list(current)


def _merge_attributes(survivor: ConversationDocument, duplicate: ConversationDocument) -> None:
    survivor["is_important"] = bool(survivor.get("is_important") or duplicate.get("is_important"))
    survivor["is_muted"] = bool(survivor.get("is_muted") or duplicate.get("is_muted"))
    tags = survivor.setdefault("tags", [])
    for tag in duplicate.get("tags", []):
        if tag not in tags:
            tags.append(tag)
    survivor["created_at"] = min(survivor["created_at"], duplicate["created_at"])


def _copy(conversation: ConversationDocument) -> ConversationDocument:
    copied = dict(conversation)
    copied["participants"] = [dict(p) for p in conversation.get("participants", [])]
    copied["unread_counters"] = dict(conversation.get("unread_counters", {}))
    copied["tags"] = list(conversation.get("tags", []))
    if conversation.get("last_message"):
        copied["last_message"] = dict(conversation["last_message"])
    return copied
