"""
SQLAlchemy ORM models for the tables the chat core reads and writes.

Tables
------
messages       -- chat messages, one row per send
notifications  -- per-user mailbox entries
proposals      -- projection of the marketplace's proposal table (id, status)
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from dealroom.persistence.database import Base, utcnow


class MessageEntity(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, nullable=False)
    receiver_id = Column(Integer, nullable=False, index=True)
    proposal_id = Column(Integer, nullable=False, index=True)
    room_key = Column(String(128), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    read = Column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("ix_messages_room_created", "room_key", "created_at"),)


class NotificationEntity(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String(32), nullable=False, default="GENERAL")
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    read = Column(Boolean, nullable=False, default=False)


class ProposalEntity(Base):
    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True)
    status = Column(String(32), nullable=False, default="UNDER_REVIEW")
