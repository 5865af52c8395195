"""
Room identity — canonical keys for per-proposal, per-pair chat rooms.

The two participant ids are sorted numerically so that either side computes
the same key, whichever of them joins or sends first.
"""

from typing import Any

from dealroom.errors import InvalidArgument

ROOM_KEY_TEMPLATE = "proposal:{proposal_id}:chat:{low}_{high}"
CACHE_KEY_PREFIX = "chat:"
PERSONAL_CHANNEL_TEMPLATE = "user:{user_id}"


def parse_id(value: Any, field: str) -> int:
    """Coerce a wire id (int or decimal string) to a non-negative int."""
    if isinstance(value, bool):
        raise InvalidArgument(f"{field} must be an integer id", details={"field": field})
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdecimal():
        parsed = int(value.strip())
    else:
        raise InvalidArgument(f"{field} must be an integer id", details={"field": field})
    if parsed < 0:
        raise InvalidArgument(f"{field} must not be negative", details={"field": field})
    return parsed


def room_key(proposal_id: Any, id_a: Any, id_b: Any) -> str:
    proposal = parse_id(proposal_id, "proposalId")
    a = parse_id(id_a, "participantId")
    b = parse_id(id_b, "participantId")
    low, high = sorted((a, b))
    return ROOM_KEY_TEMPLATE.format(proposal_id=proposal, low=low, high=high)


def conversation_key(proposal_id: Any, user_id: int, counterpart_id: Any) -> str:
    """Room key for a user talking to a counterpart. Self-chat is rejected."""
    if parse_id(counterpart_id, "counterpartId") == user_id:
        raise InvalidArgument("Cannot open a chat with yourself")
    return room_key(proposal_id, user_id, counterpart_id)


def cache_key(key: str) -> str:
    return f"{CACHE_KEY_PREFIX}{key}"


def personal_channel(user_id: int) -> str:
    return PERSONAL_CHANNEL_TEMPLATE.format(user_id=user_id)
