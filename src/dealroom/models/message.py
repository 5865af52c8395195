"""
Persisted record models — chat messages and notifications as they travel on the wire.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ChatMessage(WireModel):
    """A message between two participants of a proposal. Only `read` ever changes."""
    id: int
    sender_id: int
    receiver_id: int
    proposal_id: int
    room_key: str
    content: str
    created_at: datetime
    read: bool = False


class Notification(WireModel):
    """An entry in a user's mailbox."""
    id: int
    user_id: int
    type: str = "GENERAL"
    content: str
    created_at: datetime
    read: bool = False
