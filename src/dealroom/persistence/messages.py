"""
Message store — durable chat messages.

The read path here is only taken on a cache miss; see dealroom.history.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dealroom.errors import InvalidArgument, PersistenceError
from dealroom.models.message import ChatMessage
from dealroom.persistence.database import as_utc, utcnow
from dealroom.persistence.entities import MessageEntity

logger = logging.getLogger(__name__)


def to_message(entity: MessageEntity) -> ChatMessage:
    return ChatMessage(
        id=entity.id,
        sender_id=entity.sender_id,
        receiver_id=entity.receiver_id,
        proposal_id=entity.proposal_id,
        room_key=entity.room_key,
        content=entity.content,
        created_at=as_utc(entity.created_at),
        read=bool(entity.read),
    )


class MessageStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(
        self, sender_id: int, receiver_id: int, proposal_id: int, room_key: str, content: str,
    ) -> ChatMessage:
        entity = MessageEntity(
            sender_id=sender_id,
            receiver_id=receiver_id,
            proposal_id=proposal_id,
            room_key=room_key,
            content=content,
            created_at=utcnow(),
            read=False,
        )
        try:
            async with self._session_factory() as session:
                session.add(entity)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to store message in %s: %s", room_key, e)
            raise PersistenceError("Failed to store message") from e
        return to_message(entity)

    async def list_by_room(self, room_key: str) -> list[ChatMessage]:
        """All messages of a room, oldest first."""
        stmt = (
            select(MessageEntity)
            .where(MessageEntity.room_key == room_key)
            .order_by(MessageEntity.created_at.asc(), MessageEntity.id.asc())
        )
        return await self._fetch(stmt, room_key)

    async def list_after(self, room_key: str, message_id: int) -> list[ChatMessage]:
        """Messages of a room newer than `message_id`, oldest first."""
        stmt = (
            select(MessageEntity)
            .where(MessageEntity.room_key == room_key, MessageEntity.id > message_id)
            .order_by(MessageEntity.created_at.asc(), MessageEntity.id.asc())
        )
        return await self._fetch(stmt, room_key)

    async def _fetch(self, stmt, room_key: str) -> list[ChatMessage]:
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to load messages for %s: %s", room_key, e)
            raise PersistenceError("Failed to load messages") from e
        return [to_message(row) for row in rows]

    async def mark_read(
        self, message_id: int, reader_id: Optional[int] = None, room_key: Optional[str] = None,
    ) -> ChatMessage:
        """Set the read flag. Marking an already-read message is a no-op.

        When given, `reader_id` must be the receiver and `room_key` the
        message's room.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    entity = await session.get(MessageEntity, message_id)
                    if entity is None or (room_key is not None and entity.room_key != room_key):
                        raise InvalidArgument("Message not found", details={"messageId": message_id})
                    if reader_id is not None and entity.receiver_id != reader_id:
                        raise InvalidArgument("Only the receiver can mark a message as read")
                    if not entity.read:
                        entity.read = True
        except SQLAlchemyError as e:
            logger.error("Failed to mark message %s as read: %s", message_id, e)
            raise PersistenceError("Failed to mark message as read") from e
        return to_message(entity)

    async def correspondents(self, proposal_id: int, receiver_id: int) -> list[int]:
        """Distinct ids of users who wrote to `receiver_id` about a proposal."""
        stmt = (
            select(MessageEntity.sender_id)
            .where(MessageEntity.proposal_id == proposal_id, MessageEntity.receiver_id == receiver_id)
            .distinct()
            .order_by(MessageEntity.sender_id)
        )
        try:
            async with self._session_factory() as session:
                return list((await session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list correspondents of proposal %s: %s", proposal_id, e)
            raise PersistenceError("Failed to load correspondents") from e
