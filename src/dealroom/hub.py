"""
Event hub — connection registry, room membership and fan-out.

Every connection is authenticated once at connect time and subscribed to its
personal channel (user:{id}). Rooms are joined explicitly. Fan-out walks a
snapshot of a channel's members, so joins that land mid-delivery never tear
the iteration.

Delivery is at-most-once: a connection that drops and comes back re-joins from
scratch and may pass `lastSeenMessageId` on join-room to fetch what it missed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from dealroom.auth import SessionValidator
from dealroom.cache import MessageCache
from dealroom.errors import AuthenticationError, CacheUnavailable, InvalidArgument, PersistenceError
from dealroom.models.events import (
    C2SEvent,
    JoinRoomPayload,
    MarkReadPayload,
    RoomPayload,
    S2CEvent,
    SendMessagePayload,
    parse_payload,
)
from dealroom.models.identity import Identity
from dealroom.models.message import ChatMessage
from dealroom.persistence.messages import MessageStore
from dealroom.persistence.proposals import ProposalStatusTracker
from dealroom.rooms import conversation_key, personal_channel

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROOMS = 50

Emit = Callable[..., Awaitable[Any]]
Disconnect = Callable[[str], Awaitable[Any]]
Handler = Callable[..., Awaitable[Optional[dict[str, Any]]]]


@dataclass
class Session:
    sid: str
    identity: Identity
    rooms: set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def user_id(self) -> int:
        return self.identity.id

    @property
    def channel(self) -> str:
        return personal_channel(self.identity.id)


class EventHub:
    def __init__(
        self,
        validator: SessionValidator,
        messages: MessageStore,
        cache: MessageCache,
        emit: Emit,
        *,
        proposals: Optional[ProposalStatusTracker] = None,
        disconnect: Optional[Disconnect] = None,
        max_rooms_per_connection: int = DEFAULT_MAX_ROOMS,
    ):
        self._validator = validator
        self._messages = messages
        self._cache = cache
        self._emit = emit
        self._proposals = proposals
        self._disconnect = disconnect
        self._max_rooms = max_rooms_per_connection
        self._sessions: dict[str, Session] = {}
        self._channels: dict[str, set[str]] = {}

    # -- registry -------------------------------------------------------

    def _subscribe(self, sid: str, channel: str) -> None:
        self._channels.setdefault(channel, set()).add(sid)

    def _unsubscribe(self, sid: str, channel: str) -> None:
        members = self._channels.get(channel)
        if members is None:
            return
        members.discard(sid)
        if not members:
            del self._channels[channel]

    def _session(self, sid: str) -> Session:
        try:
            return self._sessions[sid]
        except KeyError:
            raise AuthenticationError("Not authenticated", code="not_connected")

    def session(self, sid: str) -> Optional[Session]:
        return self._sessions.get(sid)

    def members(self, channel: str) -> list[str]:
        return list(self._channels.get(channel, ()))

    def is_online(self, user_id: int) -> bool:
        return bool(self._channels.get(personal_channel(user_id)))

    # -- lifecycle ------------------------------------------------------

    async def connect(self, sid: str, auth: Any = None) -> Session:
        """Authenticate a new connection. Raises AuthenticationError on rejection."""
        token = auth.get("token") if isinstance(auth, dict) else None
        identity = self._validator.validate(token)
        session = Session(sid=sid, identity=identity)
        self._sessions[sid] = session
        self._subscribe(sid, session.channel)
        logger.info("Connected %s (user %s, role %s)", sid, identity.id, identity.role)
        return session

    def disconnect(self, sid: str) -> None:
        session = self._sessions.pop(sid, None)
        if session is None:
            return
        for room in session.rooms:
            self._unsubscribe(sid, room)
        self._unsubscribe(sid, session.channel)
        logger.info("Disconnected %s (user %s)", sid, session.user_id)

    async def revoke(self, user_id: int) -> int:
        """Drop every live connection of a user, e.g. after logout or a role change."""
        sids = self.members(personal_channel(user_id))
        for sid in sids:
            self.disconnect(sid)
            if self._disconnect is not None:
                await self._disconnect(sid)
        if sids:
            logger.info("Revoked %d connection(s) of user %s", len(sids), user_id)
        return len(sids)

    # -- fan-out --------------------------------------------------------

    async def push(self, channel: str, event: str, data: Any, skip_sid: Optional[str] = None) -> int:
        """Deliver an event to every member of a channel; returns the delivery count."""
        recipients = [sid for sid in self.members(channel) if sid != skip_sid]
        for sid in recipients:
            await self._emit(event, data, to=sid)
        return len(recipients)

    async def push_to_user(self, user_id: int, event: str, data: Any) -> int:
        return await self.push(personal_channel(user_id), event, data)

    async def push_to_proposal(self, proposal_id: int, event: str, data: Any) -> int:
        prefix = f"proposal:{proposal_id}:chat:"
        delivered = 0
        for channel in [c for c in self._channels if c.startswith(prefix)]:
            delivered += await self.push(channel, event, data)
        return delivered

    # -- client events --------------------------------------------------

    def _joined_room(self, session: Session, payload: RoomPayload) -> str:
        key = conversation_key(payload.proposal_id, session.user_id, payload.counterpart_id)
        if key not in session.rooms:
            raise InvalidArgument("Join the room first")
        return key

    async def join_room(self, sid: str, data: Any) -> dict[str, Any]:
        session = self._session(sid)
        payload = parse_payload(JoinRoomPayload, data)
        key = conversation_key(payload.proposal_id, session.user_id, payload.counterpart_id)
        if key not in session.rooms and len(session.rooms) >= self._max_rooms:
            raise InvalidArgument(f"Too many open rooms (limit {self._max_rooms})")
        session.rooms.add(key)
        self._subscribe(sid, key)
        logger.info("User %s joined %s", session.user_id, key)

        result: dict[str, Any] = {"roomKey": key}
        if payload.last_seen_message_id is not None:
            missed = await self._messages.list_after(key, payload.last_seen_message_id)
            result["missed"] = [m.to_wire() for m in missed]
        return result

    async def leave_room(self, sid: str, data: Any) -> dict[str, Any]:
        session = self._session(sid)
        payload = parse_payload(RoomPayload, data)
        key = conversation_key(payload.proposal_id, session.user_id, payload.counterpart_id)
        session.rooms.discard(key)
        self._unsubscribe(sid, key)
        return {"roomKey": key}

    async def send_message(self, sid: str, data: Any) -> ChatMessage:
        session = self._session(sid)
        payload = parse_payload(SendMessagePayload, data)
        key = self._joined_room(session, payload)

        message = await self._messages.create(
            sender_id=session.user_id,
            receiver_id=payload.counterpart_id,
            proposal_id=payload.proposal_id,
            room_key=key,
            content=payload.content,
        )
        logger.info("Message %s stored in %s", message.id, key)
        try:
            await self._cache.append(key, message)
        except CacheUnavailable as e:
            logger.warning("Cache append skipped: %s", e)

        await self.push(key, S2CEvent.MESSAGE_CREATED, message.to_wire())
        await self._promote(payload.proposal_id)
        return message

    async def _promote(self, proposal_id: int) -> None:
        if self._proposals is None:
            return
        try:
            status = await self._proposals.promote_on_engagement(proposal_id)
        except PersistenceError as e:
            logger.warning("Proposal %s status not updated: %s", proposal_id, e)
            return
        if status:
            await self.push_to_proposal(
                proposal_id, S2CEvent.STATUS_UPDATE, {"proposalId": proposal_id, "status": status},
            )

    async def typing_notice(self, sid: str, data: Any) -> None:
        """Best effort: malformed notices and non-members are dropped silently."""
        try:
            session = self._session(sid)
            payload = parse_payload(RoomPayload, data)
            key = self._joined_room(session, payload)
        except (AuthenticationError, InvalidArgument):
            return
        await self.push(
            key,
            S2CEvent.TYPING,
            {"userId": session.user_id, "counterpartId": payload.counterpart_id},
            skip_sid=sid,
        )

    async def mark_read(self, sid: str, data: Any) -> dict[str, Any]:
        session = self._session(sid)
        payload = parse_payload(MarkReadPayload, data)
        key = self._joined_room(session, payload)

        message = await self._messages.mark_read(payload.message_id, reader_id=session.user_id, room_key=key)
        try:
            await self._cache.mark_read(key, message.id)
        except CacheUnavailable as e:
            logger.warning("Cached read flag not updated: %s", e)

        receipt = {"messageId": message.id}
        await self.push(key, S2CEvent.MESSAGE_READ, receipt)
        return receipt

    # -- dispatch -------------------------------------------------------

    async def _report(self, sid: str, message: str) -> dict[str, Any]:
        await self._emit(S2CEvent.ERROR, {"message": message}, to=sid)
        return {"error": message}

    def _guarded(self, operation: Callable[[str, Any], Awaitable[Any]], failure: str) -> Handler:
        async def handler(sid: str, data: Any = None) -> Optional[dict[str, Any]]:
            try:
                result = await operation(sid, data)
            except (InvalidArgument, AuthenticationError) as e:
                return await self._report(sid, e.message)
            except PersistenceError as e:
                logger.error("%s for %s: %s", failure, sid, e)
                return await self._report(sid, failure)
            except Exception:
                logger.exception("%s for %s", failure, sid)
                return await self._report(sid, failure)
            if isinstance(result, ChatMessage):
                return result.to_wire()
            return result

        return handler

    def handlers(self) -> dict[str, Handler]:
        """Client event name → handler(sid, data) that never raises."""
        return {
            C2SEvent.JOIN_ROOM: self._guarded(self.join_room, "Failed to join room"),
            C2SEvent.LEAVE_ROOM: self._guarded(self.leave_room, "Failed to leave room"),
            C2SEvent.SEND_MESSAGE: self._guarded(self.send_message, "Failed to send message"),
            C2SEvent.TYPING_NOTICE: self._guarded(self.typing_notice, "Failed to send typing notice"),
            C2SEvent.MARK_READ: self._guarded(self.mark_read, "Failed to mark message as read"),
        }
