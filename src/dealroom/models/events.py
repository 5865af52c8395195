"""
Real-time event names and client payload schemas.
"""

from typing import Annotated, Any, Optional, TypeVar

from pydantic import BeforeValidator, ValidationError, field_validator

from dealroom.errors import InvalidArgument
from dealroom.models.message import WireModel
from dealroom.rooms import parse_id


class C2SEvent:
    """Client → server events."""
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    SEND_MESSAGE = "send-message"
    TYPING_NOTICE = "typing-notice"
    MARK_READ = "mark-read"


class S2CEvent:
    """Server → client events."""
    MESSAGE_CREATED = "message-created"
    TYPING = "typing"
    MESSAGE_READ = "message-read"
    NOTIFICATION = "notification"
    STATUS_UPDATE = "status-update"
    ERROR = "error"


class NotificationType:
    GENERAL = "GENERAL"
    INVESTMENT = "INVESTMENT"
    COMMENT = "COMMENT"


def _wire_id(value: Any) -> int:
    try:
        return parse_id(value, "id")
    except InvalidArgument as e:
        raise ValueError(e.message)


WireId = Annotated[int, BeforeValidator(_wire_id)]


class RoomPayload(WireModel):
    """join-room / leave-room / typing-notice"""
    proposal_id: WireId
    counterpart_id: WireId


class JoinRoomPayload(RoomPayload):
    last_seen_message_id: Optional[WireId] = None


class SendMessagePayload(RoomPayload):
    content: str

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be empty")
        return value


class MarkReadPayload(RoomPayload):
    message_id: WireId


P = TypeVar("P", bound=WireModel)


def parse_payload(model: type[P], data: Any) -> P:
    """Validate a client payload, mapping validation failures to InvalidArgument."""
    if not isinstance(data, dict):
        raise InvalidArgument("Missing required fields")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        if any(err["type"] == "missing" for err in errors):
            raise InvalidArgument("Missing required fields")
        first = errors[0]
        field = ".".join(str(part) for part in first["loc"])
        raise InvalidArgument(f"Invalid {field}", details={"errors": len(errors)})
