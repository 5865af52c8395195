"""
Notification store — the persisted half of the notification side-channel.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dealroom.errors import InvalidArgument, PersistenceError
from dealroom.models.message import Notification
from dealroom.persistence.database import as_utc, utcnow
from dealroom.persistence.entities import NotificationEntity

logger = logging.getLogger(__name__)


def to_notification(entity: NotificationEntity) -> Notification:
    return Notification(
        id=entity.id,
        user_id=entity.user_id,
        type=entity.type,
        content=entity.content,
        created_at=as_utc(entity.created_at),
        read=bool(entity.read),
    )


class NotificationStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, user_id: int, content: str, type: str = "GENERAL") -> Notification:
        entity = NotificationEntity(user_id=user_id, type=type, content=content, created_at=utcnow(), read=False)
        try:
            async with self._session_factory() as session:
                session.add(entity)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to store notification for user %s: %s", user_id, e)
            raise PersistenceError("Failed to store notification") from e
        return to_notification(entity)

    async def list_for(self, user_id: int) -> list[Notification]:
        """A user's notifications, newest first."""
        stmt = (
            select(NotificationEntity)
            .where(NotificationEntity.user_id == user_id)
            .order_by(NotificationEntity.created_at.desc(), NotificationEntity.id.desc())
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to load notifications for user %s: %s", user_id, e)
            raise PersistenceError("Failed to fetch notifications") from e
        return [to_notification(row) for row in rows]

    async def mark_read(self, notification_id: int, user_id: int) -> Notification:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    entity = await session.get(NotificationEntity, notification_id)
                    if entity is None or entity.user_id != user_id:
                        raise InvalidArgument("Notification not found", details={"id": notification_id})
                    entity.read = True
        except SQLAlchemyError as e:
            logger.error("Failed to mark notification %s as read: %s", notification_id, e)
            raise PersistenceError("Failed to update notification") from e
        return to_notification(entity)
