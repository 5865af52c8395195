"""
HTTP API: message history, notification pull and delivery, connection revocation.

All endpoints authenticate with the same bearer tokens the real-time
connection uses.
"""

import logging
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from dealroom.errors import InvalidArgument
from dealroom.models.events import NotificationType
from dealroom.models.identity import Identity
from dealroom.models.message import WireModel
from dealroom.server.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
"""Routes mounted by dealroom.server.app"""


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_roles(*roles: str) -> Callable[..., Any]:
    """Dependency: the caller's identity, restricted to `roles`."""

    async def dependency(
        authorization: Optional[str] = Header(None),
        services: Services = Depends(get_services),
    ) -> Identity:
        identity = services.validator.validate(authorization)
        if identity.role not in roles:
            raise HTTPException(status_code=403, detail="Permission denied")
        return identity

    return dependency


class NotifyRequest(WireModel):
    user_id: int
    content: str
    type: str = NotificationType.GENERAL


@router.get("/proposals/{proposal_id}/messages")
async def get_messages(
    proposal_id: int,
    counterpart_id: Optional[int] = Query(None, alias="counterpartId"),
    identity: Identity = Depends(require_roles("INVESTOR", "FOUNDER", "ADMIN")),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    """
    Ordered chat history between the caller and a counterpart on a proposal.

    Served from the message cache when the room is warm; otherwise loaded from
    the store and written through to the cache.
    """
    if counterpart_id is None:
        raise InvalidArgument("Missing required counterpartId query param")
    messages = await services.history.read(proposal_id, identity.id, counterpart_id)
    return [m.to_wire() for m in messages]


@router.get("/proposals/{proposal_id}/correspondents")
async def get_correspondents(
    proposal_id: int,
    identity: Identity = Depends(require_roles("INVESTOR", "FOUNDER", "ADMIN")),
    services: Services = Depends(get_services),
) -> list[dict[str, int]]:
    """Users who have written to the caller about a proposal."""
    sender_ids = await services.messages.correspondents(proposal_id, identity.id)
    return [{"userId": sender_id} for sender_id in sender_ids]


@router.get("/notifications")
async def list_notifications(
    identity: Identity = Depends(require_roles("FOUNDER", "INVESTOR")),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    notifications = await services.notifications.list_for(identity.id)
    return [n.to_wire() for n in notifications]


@router.post("/notifications/{notification_id}/read")
async def read_notification(
    notification_id: int,
    identity: Identity = Depends(require_roles("FOUNDER", "INVESTOR")),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    notification = await services.notifications.mark_read(identity.id, notification_id)
    return notification.to_wire()


@router.post("/notifications", status_code=201)
async def create_notification(
    body: NotifyRequest,
    identity: Identity = Depends(require_roles("ADMIN")),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Deliver a notification raised by a marketplace event (e.g. an investment)."""
    if not body.content.strip():
        raise InvalidArgument("Notification content cannot be empty")
    notification = await services.notifications.notify(body.user_id, body.content, body.type)
    logger.info("Admin %s notified user %s", identity.id, body.user_id)
    return notification.to_wire()


@router.post("/users/{user_id}/revoke")
async def revoke_user(
    user_id: int,
    identity: Identity = Depends(require_roles("ADMIN")),
    services: Services = Depends(get_services),
) -> dict[str, int]:
    """
    Drop every live connection of a user, e.g. after a ban or a role change.

    The user has to reconnect with a fresh token, which re-runs validation.
    """
    revoked = await services.hub.revoke(user_id)
    logger.info("Admin %s revoked %d connection(s) of user %s", identity.id, revoked, user_id)
    return {"userId": user_id, "revoked": revoked}
