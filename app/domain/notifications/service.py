"""
Notification service

Every notification is stored in the ``notifications`` collection for the
in-app inbox, then pushed to the user's registered devices. Push delivery is
best effort: a failed push never undoes the stored notification.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ...errors import NotFoundError, PermissionDeniedError, log_error
from ...firebase import PushSender
from ...store import ArrayUnion, DocumentStore, Query, Subscription
from ..users.repository import USERS_COLLECTION
from .schemas import Notification, NotificationCreate

logger = logging.getLogger(__name__)

NOTIFICATIONS_COLLECTION = "notifications"


def user_notifications_query(user_id: str) -> Query:
    return (
        Query(NOTIFICATIONS_COLLECTION)
        .where("userId", "==", user_id)
        .order("createdAt", descending=True)
    )


class NotificationService:
    def __init__(self, store: DocumentStore, push: Optional[PushSender] = None):
        self.store = store
        self.push = push

    async def create_notification(self, data: NotificationCreate) -> Notification:
        payload = {
            **data.model_dump(exclude_none=True),
            "read": False,
            "createdAt": datetime.now(timezone.utc),
        }
        notification_id = await self.store.add(NOTIFICATIONS_COLLECTION, payload)
        logger.info(f"🔔 Notification {notification_id} ({data.type}) stored for {data.userId}")

        if self.push is not None:
            await self._send_push(data)

        return Notification(id=notification_id, **payload)

    async def _send_push(self, data: NotificationCreate) -> None:
        try:
            user = await self.store.get(USERS_COLLECTION, data.userId)
            tokens = list((user.data if user else {}).get("fcmTokens", []))
            if not tokens:
                logger.debug(f"No push tokens registered for {data.userId}")
                return
            push_data = {"type": data.type}
            if data.link:
                push_data["link"] = data.link
            sent = await self.push.send(tokens, data.title, data.message, push_data)
            logger.info(f"📤 Push sent to {sent}/{len(tokens)} devices of {data.userId}")
        except Exception as e:
            log_error("NotificationService.push", e)

    async def save_token(self, user_id: str, token: str) -> None:
        await self.store.update(USERS_COLLECTION, user_id, {"fcmTokens": ArrayUnion((token,))})
        logger.info(f"✅ Push token saved for {user_id}")

    async def get_notifications(self, user_id: str) -> list[Notification]:
        docs = await self.store.query(user_notifications_query(user_id))
        return [Notification.from_document(d) for d in docs]

    async def mark_as_read(self, notification_id: str, user_id: str) -> None:
        doc = await self.store.get(NOTIFICATIONS_COLLECTION, notification_id)
        if not doc:
            raise NotFoundError("Notification not found")
        if doc.data.get("userId") != user_id:
            raise PermissionDeniedError()
        await self.store.update(NOTIFICATIONS_COLLECTION, notification_id, {"read": True})

    def subscribe_notifications(self, user_id: str) -> Subscription:
        return self.store.subscribe(
            user_notifications_query(user_id),
            transform=lambda docs: [Notification.from_document(d) for d in docs],
        )
