"""
History reader — cache first, message store on a miss, then write-through.
"""

import logging

from dealroom.cache import CacheState, MessageCache
from dealroom.errors import CacheUnavailable
from dealroom.models.message import ChatMessage
from dealroom.persistence.messages import MessageStore
from dealroom.rooms import conversation_key

logger = logging.getLogger(__name__)


class HistoryReader:
    def __init__(self, messages: MessageStore, cache: MessageCache):
        self._messages = messages
        self._cache = cache

    async def read(self, proposal_id: int, user_id: int, counterpart_id: int) -> list[ChatMessage]:
        """Ordered history of the room shared by `user_id` and `counterpart_id`."""
        return await self.read_room(conversation_key(proposal_id, user_id, counterpart_id))

    async def read_room(self, key: str) -> list[ChatMessage]:
        try:
            cached = await self._cache.read_all(key)
        except CacheUnavailable as e:
            logger.warning("Cache read failed, falling back to store: %s", e)
            return await self._messages.list_by_room(key)
        if cached.state is not CacheState.MISS:
            return cached.messages

        messages = await self._messages.list_by_room(key)
        try:
            # only fills a room nobody wrote to since the MISS above
            await self._cache.store_all(key, messages, version=cached.version)
        except CacheUnavailable as e:
            logger.warning("Cache write-through failed: %s", e)
        return messages
