"""Administrator notification feed fed by installer activity.

Chat messages, payment requests and comments, serial submissions and new
installer registrations each produce one admin-facing notification. Admin
activity never notifies the admins themselves.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from portal_chat.models.message import MessageDocument
from portal_chat.models.notification import NotificationDocument, NotificationType
from portal_chat.repositories.notification_repository import NotificationRepository
from portal_chat.utils import formatting
from portal_chat.utils.event_hub import EventHub
from portal_chat.utils.ids import new_id, utcnow


logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(
        self,
        repo: NotificationRepository,
        hub: EventHub,
        clock: Callable[[], datetime] = utcnow,
        preview_length: int = formatting.PREVIEW_LENGTH,
    ) -> None:
        self._repo = repo
        self._hub = hub
        self._clock = clock
        self._preview_length = preview_length

    async def add_notification(
        self,
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> NotificationDocument:
        doc: NotificationDocument = {
            "_id": new_id(),
            "recipient_type": "admin",
            "type": type,
            "title": title,
            "message": message,
            "data": {**(data or {}), "from_installer": True},
            "read": False,
            "created_at": self._clock(),
        }
        stored = self._repo.add(doc)
        logger.info("Admin notification %s: %s", type, title)
        await self._repo.save()
        await self._hub.emit("notification_added", {"notification": stored})
        return stored

    async def on_message_sent(self, message: MessageDocument) -> Optional[NotificationDocument]:
        sender_name = message.get("sender_name")
        if message.get("sender_type") != "installer" or not sender_name or formatting.is_staff_name(sender_name):
            logger.debug(
                "No admin notification for message %s from %s (%s)",
                message.get("_id"),
                sender_name,
                message.get("sender_type"),
            )
            return None
        return await self.add_notification(
            "new_message",
            formatting.new_message_title(sender_name),
            formatting.truncate(message["body"], self._preview_length),
            {
                "sender_id": message["sender_id"],
                "sender_name": sender_name,
                "conversation_id": message["conversation_id"],
                "message_id": message["_id"],
            },
        )

    async def on_payment_request(
        self, payment_id: str, amount: Union[int, float], installer_name: str
    ) -> NotificationDocument:
        return await self.add_notification(
            "payment_request",
            formatting.TITLES["payment_request"],
            formatting.payment_request_message(installer_name, amount),
            {"payment_id": payment_id, "amount": amount, "installer_name": installer_name},
        )

    async def on_payment_comment(
        self, payment_id: str, user_name: str, user_type: str, comment: str
    ) -> Optional[NotificationDocument]:
        if user_type != "installer":
            return None
        return await self.add_notification(
            "payment_comment",
            formatting.TITLES["payment_comment"],
            formatting.payment_comment_message(user_name, comment, self._preview_length),
            {"payment_id": payment_id, "installer_name": user_name, "comment": comment},
        )

    async def on_serial_submission(
        self, serial_number: str, installer_name: str, inverter_model: Optional[str] = None
    ) -> NotificationDocument:
        return await self.add_notification(
            "serial_submission",
            formatting.TITLES["serial_submission"],
            formatting.serial_submission_message(installer_name, serial_number),
            {"serial_number": serial_number, "installer_name": installer_name, "inverter_model": inverter_model},
        )

    async def on_new_installer(
        self, installer_id: str, installer_name: str, city: Optional[str] = None
    ) -> NotificationDocument:
        return await self.add_notification(
            "new_installer",
            formatting.TITLES["new_installer"],
            formatting.new_installer_message(installer_name),
            {"installer_id": installer_id, "installer_name": installer_name, "city": city},
        )

    def list(self) -> List[NotificationDocument]:
        return self._repo.list()

    def unread_count(self) -> int:
        return self._repo.unread_count()

    async def mark_as_read(self, notification_id: str) -> bool:
        notification = self._repo.mark_read(notification_id)
        if notification is None:
            return False
        if self._repo.dirty:
            await self._repo.save()
        await self._hub.emit("notification_read", {"notification": notification})
        return True

    async def mark_all_as_read(self) -> int:
        updated = self._repo.mark_all_read()
        if self._repo.dirty:
            await self._repo.save()
        await self._hub.emit("all_notifications_read", {"updated": updated})
        return updated

    async def clear_all(self) -> int:
        removed = self._repo.clear()
        await self._repo.save()
        logger.info("Cleared %d admin notifications", removed)
        return removed
