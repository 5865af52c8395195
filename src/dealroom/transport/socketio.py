"""
Socket.IO connection manager for the dealroom real-time protocol.

Connection: {baseUrl}/socket.io/ with auth={token}. A rejected handshake
surfaces as AuthenticationError carrying the server's reason.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import socketio
from socketio import exceptions as sio_exceptions

from dealroom.errors import AuthenticationError, ConnectionError

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/socket.io/"


class SocketIOManager:
    def __init__(
        self,
        base_url: str,
        token: str,
        transports: Optional[list[str]] = None,
        connect_timeout: float = 15.0,
    ):
        self._base_url = base_url
        self._token = token
        self._transports = transports or ["websocket"]
        self._connect_timeout = connect_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._event_handlers: list[Callable[[str, Any], None]] = []

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    def add_event_handler(self, handler: Callable[[str, Any], None]) -> Callable[[], None]:
        """Register a listener for every server event; call the returned function to unregister it."""
        self._event_handlers.append(handler)

        def unregister() -> None:
            if handler in self._event_handlers:
                self._event_handlers.remove(handler)

        return unregister

    async def connect(self) -> None:
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient()

        @self._sio.on("*")
        async def on_any(event: str, data: Any = None) -> None:
            for handler in list(self._event_handlers):
                handler(event, data)

        try:
            await self._sio.connect(
                self._base_url,
                auth={"token": self._token},
                transports=self._transports,
                socketio_path=SOCKETIO_PATH,
                wait_timeout=self._connect_timeout,
            )
        except sio_exceptions.ConnectionError as e:
            self._sio = None
            reason = str(e)
            if "Authentication error" in reason:
                raise AuthenticationError(reason)
            raise ConnectionError(f"Could not connect to {self._base_url}: {reason}")

    def emit(self, event: str, data: Any) -> None:
        """Fire-and-forget emit. Errors are logged rather than silently swallowed."""
        if not self.connected:
            raise ConnectionError("Socket.IO not connected")

        async def _do_emit() -> None:
            try:
                await self._sio.emit(event, data)  # type: ignore[union-attr]
            except Exception as e:
                logger.error("Emit failed for %s: %s", event, e)

        asyncio.get_running_loop().create_task(_do_emit())

    async def call(self, event: str, data: Any, timeout: float = 10.0) -> Any:
        """Emit and wait for the server's acknowledgement."""
        if not self.connected:
            raise ConnectionError("Socket.IO not connected")
        try:
            return await self._sio.call(event, data, timeout=timeout)  # type: ignore[union-attr]
        except sio_exceptions.TimeoutError:
            raise TimeoutError(f"Timeout waiting for {event} acknowledgement")

    async def disconnect(self) -> None:
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
