from __future__ import annotations

import uuid

from fastapi import Cookie, Depends, HTTPException, status

from app.core.config import settings
from app.core.security import decode_access_token
from app.db.session import AsyncSessionLocal
from app.models.profile import Profile
from app.services.friend_requests import RelationshipController
from app.services.notifications import NotificationBus
from app.services.relationship_store import RelationshipStore, StoreError
from app.services.relationships import RelationshipRegistry

COOKIE_NAME = "access_token"

_registry: RelationshipRegistry | None = None


def get_relationship_registry() -> RelationshipRegistry:
    global _registry
    if _registry is None:
        _registry = RelationshipRegistry(
            RelationshipStore(AsyncSessionLocal),
            NotificationBus(),
            search_limit=settings.search_result_limit,
            idle_seconds=settings.relationship_idle_seconds,
        )
    return _registry


async def get_current_user(
    registry: RelationshipRegistry = Depends(get_relationship_registry),
    access_token: str | None = Cookie(default=None, alias=COOKIE_NAME),
) -> Profile:
    if not access_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    sub = decode_access_token(access_token)
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        profile = await registry.store.get_profile(user_id)
    except StoreError:
        raise HTTPException(status_code=503, detail="Profile store unavailable")

    if not profile:
        # This is the “stale cookie / DB reset” case
        raise HTTPException(status_code=401, detail="User not found")

    return profile


async def get_relationship_controller(
    user: Profile = Depends(get_current_user),
    registry: RelationshipRegistry = Depends(get_relationship_registry),
) -> RelationshipController:
    return await registry.controller_for(user.id)
