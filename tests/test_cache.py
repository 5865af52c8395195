from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from redis.exceptions import ConnectionError as RedisConnectionError

from dealroom.cache import CacheState, LocalMessageCache, RedisMessageCache
from dealroom.errors import CacheUnavailable
from dealroom.history import HistoryReader
from dealroom.models.message import ChatMessage

ROOM = "proposal:3:chat:7_9"


def _message(message_id: int, content: str = "hi", read: bool = False) -> ChatMessage:
    return ChatMessage(
        id=message_id,
        sender_id=7,
        receiver_id=9,
        proposal_id=3,
        room_key=ROOM,
        content=content,
        created_at=datetime(2026, 1, 1, 12, 0, message_id, tzinfo=timezone.utc),
        read=read,
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class BrokenRedis:
    """A redis client whose server is unreachable."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RedisConnectionError("Connection refused")
        return fail


class TestLocalMessageCache:
    @pytest.mark.asyncio
    async def test_unknown_room_is_a_miss(self):
        result = await LocalMessageCache().read_all(ROOM)
        assert result.state is CacheState.MISS
        assert result.is_miss
        assert result.messages == []

    @pytest.mark.asyncio
    async def test_store_all_then_read_in_order(self):
        cache = LocalMessageCache()
        await cache.store_all(ROOM, [_message(1, "a"), _message(2, "b")])
        result = await cache.read_all(ROOM)
        assert result.state is CacheState.HIT
        assert [m.content for m in result.messages] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_room_is_distinguished_from_miss(self):
        cache = LocalMessageCache()
        await cache.store_all(ROOM, [])
        result = await cache.read_all(ROOM)
        assert result.state is CacheState.HIT_EMPTY
        assert not result.is_miss

    @pytest.mark.asyncio
    async def test_append_to_cold_room_is_a_noop(self):
        cache = LocalMessageCache()
        assert await cache.append(ROOM, _message(1)) is False
        assert (await cache.read_all(ROOM)).state is CacheState.MISS

    @pytest.mark.asyncio
    async def test_append_extends_warm_and_empty_rooms(self):
        cache = LocalMessageCache()
        await cache.store_all(ROOM, [])
        assert await cache.append(ROOM, _message(1, "first")) is True
        assert await cache.append(ROOM, _message(2, "second")) is True
        result = await cache.read_all(ROOM)
        assert result.state is CacheState.HIT
        assert [m.id for m in result.messages] == [1, 2]

    @pytest.mark.asyncio
    async def test_entries_expire_after_ttl_from_last_write(self):
        clock = FakeClock()
        cache = LocalMessageCache(ttl_seconds=60, clock=clock)
        await cache.store_all(ROOM, [_message(1)])
        clock.now += 50
        await cache.append(ROOM, _message(2))
        clock.now += 50
        assert (await cache.read_all(ROOM)).state is CacheState.HIT
        clock.now += 11
        assert (await cache.read_all(ROOM)).state is CacheState.MISS

    @pytest.mark.asyncio
    async def test_mark_read_rewrites_cached_entry(self):
        cache = LocalMessageCache()
        await cache.store_all(ROOM, [_message(1), _message(2)])
        assert await cache.mark_read(ROOM, 2) is True
        assert await cache.mark_read(ROOM, 99) is False
        messages = (await cache.read_all(ROOM)).messages
        assert [m.read for m in messages] == [False, True]

    @pytest.mark.asyncio
    async def test_cached_snapshots_are_copies(self):
        cache = LocalMessageCache()
        await cache.store_all(ROOM, [_message(1)])
        first = (await cache.read_all(ROOM)).messages
        await cache.append(ROOM, _message(2))
        assert len(first) == 1


class TestRedisMessageCacheFailures:
    @pytest.mark.asyncio
    async def test_backend_errors_become_cache_unavailable(self):
        cache = RedisMessageCache(BrokenRedis())
        with pytest.raises(CacheUnavailable):
            await cache.read_all(ROOM)
        with pytest.raises(CacheUnavailable):
            await cache.append(ROOM, _message(1))
        with pytest.raises(CacheUnavailable):
            await cache.store_all(ROOM, [_message(1)])
        with pytest.raises(CacheUnavailable):
            await cache.mark_read(ROOM, 1)

    @pytest.mark.asyncio
    async def test_history_falls_back_to_store_when_cache_is_down(self, message_store):
        created = await message_store.create(7, 9, 3, ROOM, "hello")
        history = HistoryReader(message_store, RedisMessageCache(BrokenRedis()))
        messages = await history.read(3, 9, 7)
        assert [m.id for m in messages] == [created.id]


class TestLocalFillGuard:
    @pytest.mark.asyncio
    async def test_fill_is_dropped_when_room_was_written_after_miss(self):
        cache = LocalMessageCache()
        miss = await cache.read_all(ROOM)
        # a send lands while the reader is still querying the store
        assert await cache.append(ROOM, _message(1)) is False
        assert await cache.store_all(ROOM, [], version=miss.version) is False
        assert (await cache.read_all(ROOM)).state is CacheState.MISS

    @pytest.mark.asyncio
    async def test_fill_is_dropped_when_room_already_cached(self):
        cache = LocalMessageCache()
        miss = await cache.read_all(ROOM)
        await cache.store_all(ROOM, [_message(1), _message(2)])
        assert await cache.store_all(ROOM, [_message(1)], version=miss.version) is False
        assert [m.id for m in (await cache.read_all(ROOM)).messages] == [1, 2]

    @pytest.mark.asyncio
    async def test_unwritten_room_is_filled(self):
        cache = LocalMessageCache()
        miss = await cache.read_all(ROOM)
        assert await cache.store_all(ROOM, [_message(1)], version=miss.version) is True
        assert (await cache.read_all(ROOM)).state is CacheState.HIT

    @pytest.mark.asyncio
    async def test_append_after_fill_holding_the_message_does_not_duplicate(self):
        cache = LocalMessageCache()
        miss = await cache.read_all(ROOM)
        await cache.store_all(ROOM, [_message(1)], version=miss.version)
        await cache.append(ROOM, _message(1))
        assert [m.id for m in (await cache.read_all(ROOM)).messages] == [1]


class TestLocalSweep:
    @pytest.mark.asyncio
    async def test_expired_rooms_are_released(self):
        clock = FakeClock()
        cache = LocalMessageCache(ttl_seconds=60, clock=clock)
        for i in range(1000):
            await cache.store_all(f"proposal:{i}:chat:1_2", [_message(1)])
        assert len(cache) == 1000
        clock.now += 3600
        await cache.store_all(ROOM, [_message(1)])
        assert len(cache) == 1
        assert (await cache.read_all(ROOM)).state is CacheState.HIT

    @pytest.mark.asyncio
    async def test_live_rooms_survive_a_sweep(self):
        clock = FakeClock()
        cache = LocalMessageCache(ttl_seconds=60, clock=clock)
        await cache.store_all("proposal:1:chat:1_2", [_message(1)])
        clock.now += 50
        await cache.store_all(ROOM, [_message(2)])
        clock.now += 20
        await cache.append(ROOM, _message(3))
        await cache.store_all("proposal:2:chat:1_2", [])
        assert len(cache) == 2
        assert [m.id for m in (await cache.read_all(ROOM)).messages] == [2, 3]


@pytest_asyncio.fixture
async def redis_client():
    client = FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


class TestRedisMessageCache:
    @pytest.mark.asyncio
    async def test_unknown_room_is_a_miss(self, redis_client):
        result = await RedisMessageCache(redis_client).read_all(ROOM)
        assert result.state is CacheState.MISS
        assert result.version == 0

    @pytest.mark.asyncio
    async def test_store_all_then_read_in_order(self, redis_client):
        cache = RedisMessageCache(redis_client, ttl_seconds=120)
        await cache.store_all(ROOM, [_message(1, "a"), _message(2, "b")])
        result = await cache.read_all(ROOM)
        assert result.state is CacheState.HIT
        assert [m.content for m in result.messages] == ["a", "b"]
        assert 0 < await redis_client.ttl("chat:" + ROOM) <= 120

    @pytest.mark.asyncio
    async def test_empty_room_uses_marker(self, redis_client):
        cache = RedisMessageCache(redis_client)
        await cache.store_all(ROOM, [])
        assert (await cache.read_all(ROOM)).state is CacheState.HIT_EMPTY
        assert await redis_client.exists("chat:" + ROOM + ":empty")

    @pytest.mark.asyncio
    async def test_append_to_cold_room_is_a_noop(self, redis_client):
        cache = RedisMessageCache(redis_client)
        assert await cache.append(ROOM, _message(1)) is False
        assert not await redis_client.exists("chat:" + ROOM)
        miss = await cache.read_all(ROOM)
        assert miss.state is CacheState.MISS
        assert miss.version == 1

    @pytest.mark.asyncio
    async def test_append_turns_empty_room_into_list(self, redis_client):
        cache = RedisMessageCache(redis_client)
        await cache.store_all(ROOM, [])
        assert await cache.append(ROOM, _message(1, "first")) is True
        assert await cache.append(ROOM, _message(2, "second")) is True
        result = await cache.read_all(ROOM)
        assert result.state is CacheState.HIT
        assert [m.id for m in result.messages] == [1, 2]
        assert not await redis_client.exists("chat:" + ROOM + ":empty")

    @pytest.mark.asyncio
    async def test_store_all_replaces_previous_list(self, redis_client):
        cache = RedisMessageCache(redis_client)
        await cache.store_all(ROOM, [_message(1), _message(2)])
        await cache.store_all(ROOM, [_message(3)])
        assert [m.id for m in (await cache.read_all(ROOM)).messages] == [3]
        await cache.store_all(ROOM, [])
        assert (await cache.read_all(ROOM)).state is CacheState.HIT_EMPTY

    @pytest.mark.asyncio
    async def test_append_refreshes_ttl(self, redis_client):
        cache = RedisMessageCache(redis_client, ttl_seconds=600)
        await cache.store_all(ROOM, [_message(1)])
        await redis_client.expire("chat:" + ROOM, 5)
        await cache.append(ROOM, _message(2))
        assert await redis_client.ttl("chat:" + ROOM) > 5

    @pytest.mark.asyncio
    async def test_mark_read_rewrites_cached_entry(self, redis_client):
        cache = RedisMessageCache(redis_client)
        await cache.store_all(ROOM, [_message(1), _message(2)])
        assert await cache.mark_read(ROOM, 2) is True
        assert await cache.mark_read(ROOM, 99) is False
        assert [m.read for m in (await cache.read_all(ROOM)).messages] == [False, True]

    @pytest.mark.asyncio
    async def test_fill_is_dropped_when_room_was_written_after_miss(self, redis_client):
        cache = RedisMessageCache(redis_client)
        miss = await cache.read_all(ROOM)
        await cache.append(ROOM, _message(1))
        assert await cache.store_all(ROOM, [], version=miss.version) is False
        assert (await cache.read_all(ROOM)).state is CacheState.MISS

        miss = await cache.read_all(ROOM)
        assert await cache.store_all(ROOM, [_message(1)], version=miss.version) is True
        assert await cache.store_all(ROOM, [], version=miss.version) is False
        assert [m.id for m in (await cache.read_all(ROOM)).messages] == [1]

    @pytest.mark.asyncio
    async def test_duplicate_entries_are_read_once(self, redis_client):
        cache = RedisMessageCache(redis_client)
        await cache.store_all(ROOM, [_message(1)])
        await cache.append(ROOM, _message(1))
        await cache.append(ROOM, _message(2))
        assert [m.id for m in (await cache.read_all(ROOM)).messages] == [1, 2]
        assert await cache.mark_read(ROOM, 1) is True
        assert (await cache.read_all(ROOM)).messages[0].read is True
