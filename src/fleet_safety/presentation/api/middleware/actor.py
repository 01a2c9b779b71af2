"""
Actor resolution for the fleet safety API.

Authentication is owned by the gateway in front of this service. The
gateway forwards the authenticated user as ``X-Actor-ID`` and
``X-Actor-Role`` headers; this module turns them into an ``Actor``.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from ....domain.value_objects.actor import Actor, ActorRole


async def get_optional_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None)
) -> Optional[Actor]:
    """
    Resolve the calling actor if the gateway forwarded one.

    Raises:
        HTTPException: 400 if the headers are present but malformed
    """
    if not x_actor_id and not x_actor_role:
        return None
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID and X-Actor-Role must be sent together"
        )

    try:
        actor_id = UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid actor ID: {x_actor_id}"
        )

    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown actor role: {x_actor_role}"
        )

    return Actor(actor_id=actor_id, role=role)


async def get_current_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    """
    Require an actor on the request.

    Raises:
        HTTPException: 401 if no actor was forwarded
    """
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Actor-ID and X-Actor-Role headers"
        )
    return actor


async def get_reviewer_actor(actor: Actor = Depends(get_current_actor)) -> Actor:
    """
    Require an actor allowed to review trips.

    Raises:
        HTTPException: 403 if the actor cannot review trips
    """
    if not actor.can_review:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role {actor.role.value} cannot review trips"
        )
    return actor
