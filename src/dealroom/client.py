"""
AsyncDealroomClient — SDK for the dealroom chat and notification service.
"""

import asyncio
from typing import Any, AsyncGenerator, Optional

from dealroom.errors import ConnectionError, DealroomError
from dealroom.models.events import C2SEvent
from dealroom.models.message import ChatMessage, Notification
from dealroom.transport.http import DEFAULT_BASE_URL, HttpClient
from dealroom.transport.socketio import SocketIOManager


class ChatEvent:
    __slots__ = ("type", "data")

    def __init__(self, type: str, data: Any):
        self.type = type
        self.data = data

    def __repr__(self) -> str:
        return f"ChatEvent(type={self.type!r})"


def _unwrap_ack(event: str, ack: Any) -> Any:
    if isinstance(ack, dict) and "error" in ack:
        raise DealroomError("event_rejected", f"{event}: {ack['error']}")
    return ack


class AsyncDealroomClient:
    """Async dealroom client: Socket.IO for live events, REST for history."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        transports: Optional[list[str]] = None,
        connect_timeout: float = 15.0,
    ):
        self._base_url = base_url
        self._access_token = access_token
        self._transports = transports
        self._connect_timeout = connect_timeout

        self.http = HttpClient(base_url=base_url, token=access_token)
        self._sio: Optional[SocketIOManager] = None

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    async def connect(self, access_token: Optional[str] = None) -> None:
        token = access_token or self._access_token
        if not token:
            raise ConnectionError("access_token required. Run `dealroom auth login` first.")
        self.http.set_token(token)
        self._sio = SocketIOManager(
            base_url=self._base_url,
            token=token,
            transports=self._transports,
            connect_timeout=self._connect_timeout,
        )
        await self._sio.connect()

    async def disconnect(self) -> None:
        if self._sio:
            await self._sio.disconnect()
            self._sio = None

    async def close(self) -> None:
        await self.disconnect()
        await self.http.close()

    async def join_room(
        self, proposal_id: int, counterpart_id: int, last_seen_message_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """Join the chat room shared with `counterpart_id` on a proposal.

        With `last_seen_message_id`, the reply's `missed` list holds every
        message stored after it.
        """
        payload: dict[str, Any] = {"proposalId": proposal_id, "counterpartId": counterpart_id}
        if last_seen_message_id is not None:
            payload["lastSeenMessageId"] = last_seen_message_id
        return _unwrap_ack(C2SEvent.JOIN_ROOM, await self._ensure_connected().call(C2SEvent.JOIN_ROOM, payload))

    async def leave_room(self, proposal_id: int, counterpart_id: int) -> None:
        ack = await self._ensure_connected().call(
            C2SEvent.LEAVE_ROOM, {"proposalId": proposal_id, "counterpartId": counterpart_id},
        )
        _unwrap_ack(C2SEvent.LEAVE_ROOM, ack)

    async def send_message(self, proposal_id: int, counterpart_id: int, content: str) -> ChatMessage:
        """Send a message and return it as stored by the server."""
        ack = await self._ensure_connected().call(
            C2SEvent.SEND_MESSAGE,
            {"proposalId": proposal_id, "counterpartId": counterpart_id, "content": content},
        )
        return ChatMessage.model_validate(_unwrap_ack(C2SEvent.SEND_MESSAGE, ack))

    def typing(self, proposal_id: int, counterpart_id: int) -> None:
        """Fire-and-forget typing notice."""
        self._ensure_connected().emit(
            C2SEvent.TYPING_NOTICE, {"proposalId": proposal_id, "counterpartId": counterpart_id},
        )

    async def mark_read(self, message_id: int, proposal_id: int, counterpart_id: int) -> None:
        ack = await self._ensure_connected().call(
            C2SEvent.MARK_READ,
            {"messageId": message_id, "proposalId": proposal_id, "counterpartId": counterpart_id},
        )
        _unwrap_ack(C2SEvent.MARK_READ, ack)

    async def subscribe(self) -> AsyncGenerator[ChatEvent, None]:
        """Persistent stream of server events — yields until disconnected."""
        sio = self._ensure_connected()
        queue: asyncio.Queue[ChatEvent] = asyncio.Queue()

        def _handler(event_type: str, data: Any) -> None:
            queue.put_nowait(ChatEvent(type=event_type, data=data))

        remove = sio.add_event_handler(_handler)
        try:
            while self.connected:
                try:
                    yield await asyncio.wait_for(queue.get(), timeout=5.0)
                except asyncio.TimeoutError:
                    continue
        finally:
            remove()

    async def history(self, proposal_id: int, counterpart_id: int) -> list[ChatMessage]:
        data = await self.http.get(f"/proposals/{proposal_id}/messages", params={"counterpartId": counterpart_id})
        return [ChatMessage.model_validate(item) for item in data]

    async def notifications(self) -> list[Notification]:
        data = await self.http.get("/notifications")
        return [Notification.model_validate(item) for item in data]

    async def mark_notification_read(self, notification_id: int) -> Notification:
        return Notification.model_validate(await self.http.post(f"/notifications/{notification_id}/read"))

    def _ensure_connected(self) -> SocketIOManager:
        if not self._sio or not self._sio.connected:
            raise ConnectionError("Not connected. Call connect() first.")
        return self._sio
