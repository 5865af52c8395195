"""
dealroom — real-time founder/investor chat for a funding marketplace.

Socket.IO + REST service, with a Python SDK and CLI for it.
"""

__version__ = "0.1.0"

from dealroom.errors import (  # noqa: E402
    AuthenticationError,
    CacheUnavailable,
    ConnectionError,
    DealroomError,
    InvalidArgument,
    PersistenceError,
)
from dealroom.models.events import C2SEvent, NotificationType, S2CEvent  # noqa: E402
from dealroom.rooms import room_key  # noqa: E402
from dealroom.client import AsyncDealroomClient  # noqa: E402

__all__ = [
    "AsyncDealroomClient",
    "DealroomError",
    "AuthenticationError",
    "InvalidArgument",
    "PersistenceError",
    "CacheUnavailable",
    "ConnectionError",
    "C2SEvent",
    "S2CEvent",
    "NotificationType",
    "room_key",
]
