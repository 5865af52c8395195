"""Shared fixtures: in-memory database, local cache, recording emitter, hub."""

from typing import Any, Optional

import pytest
import pytest_asyncio

from dealroom.auth import SessionValidator
from dealroom.cache import LocalMessageCache
from dealroom.hub import EventHub
from dealroom.persistence import Database, MessageStore, NotificationStore, ProposalStatusTracker

SECRET = "test-secret-key-with-enough-bytes-for-hs256"
MEMORY_URL = "sqlite+aiosqlite:///:memory:"


class Recorder:
    """Stands in for AsyncServer.emit and records every delivery."""

    def __init__(self) -> None:
        self.sent: list[tuple[Optional[str], str, Any]] = []
        self.disconnected: list[str] = []

    async def __call__(self, event: str, data: Any = None, to: Optional[str] = None) -> None:
        self.sent.append((to, event, data))

    async def disconnect(self, sid: str) -> None:
        self.disconnected.append(sid)

    def to(self, sid: str, event: Optional[str] = None) -> list[Any]:
        return [data for to, ev, data in self.sent if to == sid and (event is None or ev == event)]

    def events(self, event: str) -> list[tuple[Optional[str], Any]]:
        return [(to, data) for to, ev, data in self.sent if ev == event]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def validator() -> SessionValidator:
    return SessionValidator(SECRET)


@pytest.fixture
def make_token(validator):
    def _make(user_id: int, role: str = "INVESTOR", name: str = "") -> str:
        return validator.issue_token(user_id, role, name=name or f"user{user_id}")
    return _make


@pytest_asyncio.fixture
async def database():
    db = Database(MEMORY_URL)
    await db.init()
    yield db
    await db.dispose()


@pytest.fixture
def message_store(database) -> MessageStore:
    return MessageStore(database.session_factory)


@pytest.fixture
def notification_store(database) -> NotificationStore:
    return NotificationStore(database.session_factory)


@pytest.fixture
def proposals(database) -> ProposalStatusTracker:
    return ProposalStatusTracker(database.session_factory)


@pytest.fixture
def cache() -> LocalMessageCache:
    return LocalMessageCache(ttl_seconds=3600)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def hub(validator, message_store, cache, proposals, recorder) -> EventHub:
    return EventHub(
        validator,
        message_store,
        cache,
        recorder,
        proposals=proposals,
        disconnect=recorder.disconnect,
    )
