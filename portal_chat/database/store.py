"""Key-value document stores backing the chat engine.

The engine keeps three named blobs (conversations, messages by conversation,
admin notifications) and only ever needs to load or replace one of them.
"""

import copy
from typing import Any, Dict, Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorDatabase


CONVERSATIONS_KEY = "conversations"
MESSAGES_KEY = "messages-by-conversation"
NOTIFICATIONS_KEY = "admin-notifications"


class DocumentStore(Protocol):

    async def load(self, key: str) -> Optional[Any]:
        ...

    async def save(self, key: str, value: Any) -> None:
        ...


class MemoryStore:
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    async def load(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        if value is None:
            return None
        return copy.deepcopy(value)

    async def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class MongoStore:
    """One MongoDB document per key: ``{"_id": key, "value": blob}``."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "engine_state") -> None:
        self._db = db
        self._collection_name = collection_name

    @property
    def collection(self):
        return self._db[self._collection_name]

    async def load(self, key: str) -> Optional[Any]:
        doc = await self.collection.find_one({"_id": key})
        if not doc:
            return None
        return doc.get("value")

    async def save(self, key: str, value: Any) -> None:
        await self.collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)
