from typing import List, Optional

from portal_chat.database.store import NOTIFICATIONS_KEY, DocumentStore
from portal_chat.models.notification import NotificationDocument


class NotificationRepository:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._notifications: List[NotificationDocument] = []
        self.dirty = False

    async def load(self) -> None:
        self._notifications = await self._store.load(NOTIFICATIONS_KEY) or []
        self.dirty = False

    async def save(self) -> None:
        await self._store.save(NOTIFICATIONS_KEY, self._notifications)
        self.dirty = False

    def add(self, notification: NotificationDocument) -> NotificationDocument:
        self._notifications.insert(0, notification)
        self.dirty = True
        return dict(notification)

    def list(self) -> List[NotificationDocument]:
        ordered = sorted(self._notifications, key=lambda n: n["created_at"], reverse=True)
        return [dict(n) for n in ordered]

    def mark_read(self, notification_id: str) -> Optional[NotificationDocument]:
        for notification in self._notifications:
            if notification["_id"] == notification_id:
                if not notification.get("read"):
                    notification["read"] = True
                    self.dirty = True
                return dict(notification)
        return None

    def mark_all_read(self) -> int:
        updated = 0
        for notification in self._notifications:
            if not notification.get("read"):
                notification["read"] = True
                updated += 1
        if updated:
            self.dirty = True
        return updated

    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.get("read"))

    def clear(self) -> int:
        removed = len(self._notifications)
        self._notifications = []
        self.dirty = True
        return removed
