"""
Service wiring — builds the chat core from Settings.

Everything the process shares (database, cache, hub registry) hangs off one
Services object that the HTTP app and the Socket.IO server both receive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import socketio

from dealroom.auth import SessionValidator
from dealroom.cache import LocalMessageCache, MessageCache, RedisMessageCache
from dealroom.config import Settings
from dealroom.history import HistoryReader
from dealroom.hub import EventHub
from dealroom.notifications import NotificationChannel
from dealroom.persistence import Database, MessageStore, NotificationStore, ProposalStatusTracker
from dealroom.server.sockets import bind_hub, create_socket_server

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    database: Database
    cache: MessageCache
    validator: SessionValidator
    messages: MessageStore
    proposals: ProposalStatusTracker
    history: HistoryReader
    hub: EventHub
    notifications: NotificationChannel
    sio: socketio.AsyncServer

    async def startup(self) -> None:
        await self.database.init()
        logger.info("Database ready at %s", self.database.url)

    async def shutdown(self) -> None:
        close = getattr(self.cache, "close", None)
        if close is not None:
            await close()
        await self.database.dispose()


def build_cache(settings: Settings) -> MessageCache:
    if settings.redis_url:
        logger.info("Using Redis message cache")
        return RedisMessageCache.from_url(settings.redis_url, ttl_seconds=settings.cache_ttl_seconds)
    logger.info("DEALROOM_REDIS_URL not set, using in-process message cache")
    return LocalMessageCache(ttl_seconds=settings.cache_ttl_seconds)


def build_services(
    settings: Settings,
    database: Optional[Database] = None,
    cache: Optional[MessageCache] = None,
) -> Services:
    database = database or Database(settings.database_url)
    cache = cache or build_cache(settings)
    validator = SessionValidator(settings.secret_key, settings.algorithm)
    messages = MessageStore(database.session_factory)
    proposals = ProposalStatusTracker(database.session_factory)

    sio = create_socket_server(settings.cors_origin_list)
    hub = EventHub(
        validator,
        messages,
        cache,
        sio.emit,
        proposals=proposals,
        disconnect=sio.disconnect,
        max_rooms_per_connection=settings.max_rooms_per_connection,
    )
    bind_hub(sio, hub)

    return Services(
        settings=settings,
        database=database,
        cache=cache,
        validator=validator,
        messages=messages,
        proposals=proposals,
        history=HistoryReader(messages, cache),
        hub=hub,
        notifications=NotificationChannel(NotificationStore(database.session_factory), hub),
        sio=sio,
    )
