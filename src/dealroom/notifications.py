"""
Notification side-channel — persist first, then push to the recipient's personal channel.

A recipient with no live connection is not an error: the notification waits in
the store until the pull endpoint serves it.
"""

import logging

from dealroom.hub import EventHub
from dealroom.models.events import NotificationType, S2CEvent
from dealroom.models.message import Notification
from dealroom.persistence.notifications import NotificationStore

logger = logging.getLogger(__name__)


class NotificationChannel:
    def __init__(self, store: NotificationStore, hub: EventHub):
        self._store = store
        self._hub = hub

    async def notify(self, user_id: int, content: str, type: str = NotificationType.GENERAL) -> Notification:
        notification = await self._store.create(user_id, content, type)
        try:
            delivered = await self._hub.push_to_user(user_id, S2CEvent.NOTIFICATION, notification.to_wire())
        except Exception as e:
            logger.warning("Live push of notification %s failed: %s", notification.id, e)
            delivered = 0
        if not delivered:
            logger.debug("User %s offline, notification %s kept for pull", user_id, notification.id)
        return notification

    async def list_for(self, user_id: int) -> list[Notification]:
        return await self._store.list_for(user_id)

    async def mark_read(self, user_id: int, notification_id: int) -> Notification:
        return await self._store.mark_read(notification_id, user_id)
