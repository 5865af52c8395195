"""
Socket.IO binding — connects an EventHub to a python-socketio AsyncServer.

Handlers run with async_handlers=False: events from one connection are handled
in the order they arrive, while separate connections proceed concurrently.
"""

import logging
from typing import Any, Optional

import socketio
from socketio.exceptions import ConnectionRefusedError

from dealroom.errors import AuthenticationError
from dealroom.hub import EventHub

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "socket.io"


def create_socket_server(cors_origins: Any = "*") -> socketio.AsyncServer:
    if cors_origins == ["*"]:
        cors_origins = "*"
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_origins,
        async_handlers=False,
    )


def bind_hub(sio: socketio.AsyncServer, hub: EventHub) -> None:
    @sio.event
    async def connect(sid: str, environ: dict[str, Any], auth: Optional[dict[str, Any]] = None) -> None:
        try:
            await hub.connect(sid, auth)
        except AuthenticationError as e:
            logger.warning("Socket auth failed for %s: %s", sid, e.message)
            raise ConnectionRefusedError(e.message)

    @sio.event
    async def disconnect(sid: str, reason: Any = None) -> None:
        hub.disconnect(sid)

    for event, handler in hub.handlers().items():
        sio.on(event, handler=handler)
