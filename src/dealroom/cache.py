"""
Fast-path message cache — one append-only list of message snapshots per room.

Lookups are tri-state:
- HIT        the room is cached and holds messages
- HIT_EMPTY  the room is cached and known to hold none
- MISS       nothing cached; the message store is authoritative

Appends only extend rooms that are already cached, so a cold room never holds
a partial list. An append that finds the room cold bumps the room's generation
instead; a read-through fill carries the generation it saw on its MISS and is
dropped if the room was written (or filled by someone else) in the meantime.
Readers dedupe by message id, so an append racing a fill that already holds
the message is harmless. Every backend failure surfaces as CacheUnavailable.
"""

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from dealroom.errors import CacheUnavailable
from dealroom.models.message import ChatMessage
from dealroom.rooms import cache_key

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
EMPTY_MARKER_SUFFIX = ":empty"
GENERATION_SUFFIX = ":gen"


class CacheState(enum.Enum):
    HIT = "hit"
    HIT_EMPTY = "hit_empty"
    MISS = "miss"


@dataclass(frozen=True)
class CacheResult:
    state: CacheState
    messages: list[ChatMessage] = field(default_factory=list)
    version: int = 0
    """On a MISS, the room generation to hand back to store_all()."""

    @property
    def is_miss(self) -> bool:
        return self.state is CacheState.MISS


def _dump(message: ChatMessage) -> str:
    return message.model_dump_json(by_alias=True)


def _load(raw: str) -> ChatMessage:
    return ChatMessage.model_validate_json(raw)


def _result(raw_items: list[str]) -> CacheResult:
    if not raw_items:
        return CacheResult(CacheState.HIT_EMPTY)
    messages: list[ChatMessage] = []
    seen: set[int] = set()
    for raw in raw_items:
        message = _load(raw)
        if message.id in seen:
            continue
        seen.add(message.id)
        messages.append(message)
    return CacheResult(CacheState.HIT, messages)


class MessageCache(Protocol):
    """Operations the hub and the history reader need from a cache backend."""

    ttl_seconds: int

    async def append(self, room_key: str, message: ChatMessage) -> bool:
        ...

    async def read_all(self, room_key: str) -> CacheResult:
        ...

    async def store_all(self, room_key: str, messages: list[ChatMessage], version: Optional[int] = None) -> bool:
        """Replace a room's list. With `version`, fill only a still-absent, unwritten room."""
        ...

    async def mark_read(self, room_key: str, message_id: int) -> bool:
        ...


@dataclass
class _Entry:
    expires_at: float
    items: list[str]
    ids: set[int]


class LocalMessageCache:
    """In-process cache for single-instance deployments and tests.

    Expired rooms are swept at most once per TTL window, on the next write.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._generations: dict[str, tuple[float, int]] = {}
        self._next_sweep = clock() + ttl_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self) -> None:
        now = self._clock()
        if now < self._next_sweep:
            return
        self._entries = {k: e for k, e in self._entries.items() if e.expires_at > now}
        self._generations = {k: g for k, g in self._generations.items() if g[0] > now}
        self._next_sweep = now + self.ttl_seconds

    def _live(self, room_key: str) -> Optional[_Entry]:
        entry = self._entries.get(room_key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[room_key]
            return None
        return entry

    def _generation(self, room_key: str) -> int:
        expires_at, generation = self._generations.get(room_key, (0.0, 0))
        return generation if expires_at > self._clock() else 0

    def _bump(self, room_key: str) -> None:
        self._generations[room_key] = (self._clock() + self.ttl_seconds, self._generation(room_key) + 1)
        self._sweep()

    async def append(self, room_key: str, message: ChatMessage) -> bool:
        entry = self._live(room_key)
        if entry is None:
            self._bump(room_key)
            return False
        if message.id not in entry.ids:
            entry.items.append(_dump(message))
            entry.ids.add(message.id)
        entry.expires_at = self._clock() + self.ttl_seconds
        return True

    async def read_all(self, room_key: str) -> CacheResult:
        entry = self._live(room_key)
        if entry is None:
            return CacheResult(CacheState.MISS, version=self._generation(room_key))
        return _result(list(entry.items))

    async def store_all(self, room_key: str, messages: list[ChatMessage], version: Optional[int] = None) -> bool:
        if version is not None and (self._live(room_key) is not None or self._generation(room_key) != version):
            logger.debug("Skipped stale fill of %s", room_key)
            return False
        self._entries[room_key] = _Entry(
            expires_at=self._clock() + self.ttl_seconds,
            items=[_dump(m) for m in messages],
            ids={m.id for m in messages},
        )
        self._sweep()
        return True

    async def mark_read(self, room_key: str, message_id: int) -> bool:
        entry = self._live(room_key)
        if entry is None or message_id not in entry.ids:
            return False
        for index, raw in enumerate(entry.items):
            message = _load(raw)
            if message.id == message_id and not message.read:
                entry.items[index] = _dump(message.model_copy(update={"read": True}))
        return True


class RedisMessageCache:
    """Redis lists under chat:{roomKey}, with an empty-room marker and a generation counter beside it."""

    def __init__(self, client: Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self._client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> "RedisMessageCache":
        return cls(Redis.from_url(url, decode_responses=True), ttl_seconds=ttl_seconds)

    @staticmethod
    def _keys(room_key: str) -> tuple[str, str, str]:
        key = cache_key(room_key)
        return key, key + EMPTY_MARKER_SUFFIX, key + GENERATION_SUFFIX

    async def append(self, room_key: str, message: ChatMessage) -> bool:
        key, marker, generation = self._keys(room_key)
        value = _dump(message)
        try:
            if await self._client.rpushx(key, value):
                await self._client.expire(key, self.ttl_seconds)
                return True
            if await self._client.delete(marker):
                async with self._client.pipeline(transaction=True) as pipe:
                    pipe.rpush(key, value)
                    pipe.expire(key, self.ttl_seconds)
                    await pipe.execute()
                return True
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(generation)
                pipe.expire(generation, self.ttl_seconds)
                await pipe.execute()
            return False
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"append failed for {key}: {e}") from e

    async def read_all(self, room_key: str) -> CacheResult:
        key, marker, generation = self._keys(room_key)
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                pipe.lrange(key, 0, -1)
                pipe.exists(marker)
                pipe.get(generation)
                raw_items, has_marker, version = await pipe.execute()
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"read failed for {key}: {e}") from e
        if raw_items:
            return _result(raw_items)
        if has_marker:
            return CacheResult(CacheState.HIT_EMPTY)
        return CacheResult(CacheState.MISS, version=int(version or 0))

    async def store_all(self, room_key: str, messages: list[ChatMessage], version: Optional[int] = None) -> bool:
        key, marker, generation = self._keys(room_key)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                if version is not None:
                    await pipe.watch(key, marker, generation)
                    if await pipe.exists(key, marker) or int(await pipe.get(generation) or 0) != version:
                        logger.debug("Skipped stale fill of %s", key)
                        return False
                    pipe.multi()
                pipe.delete(key, marker)
                if messages:
                    pipe.rpush(key, *[_dump(m) for m in messages])
                    pipe.expire(key, self.ttl_seconds)
                else:
                    pipe.set(marker, 1, ex=self.ttl_seconds)
                await pipe.execute()
            return True
        except WatchError:
            logger.debug("Room %s written during fill, dropped", key)
            return False
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"store failed for {key}: {e}") from e

    async def mark_read(self, room_key: str, message_id: int) -> bool:
        key, _, _ = self._keys(room_key)
        try:
            raw_items = await self._client.lrange(key, 0, -1)
            found = False
            for index, raw in enumerate(raw_items):
                message = _load(raw)
                if message.id != message_id:
                    continue
                found = True
                if not message.read:
                    # entries are only ever appended at the tail, so the index is stable
                    await self._client.lset(key, index, _dump(message.model_copy(update={"read": True})))
            return found
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"mark_read failed for {key}: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
