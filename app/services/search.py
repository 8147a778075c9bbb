from __future__ import annotations

import logging
from uuid import UUID

from app.models.profile import Profile
from app.services.relationship_store import RelationshipStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_RESULT_LIMIT = 5


async def search_profiles(
    store: RelationshipStore,
    query: str,
    *,
    current_user_id: UUID | None,
    limit: int = DEFAULT_RESULT_LIMIT,
) -> list[Profile]:
    """Case-insensitive username prefix search, never including the caller.

    Callers are expected to debounce keystrokes before calling this. Store
    failures are logged and come back as an empty list.
    """
    prefix = (query or "").strip()
    if not prefix:
        return []

    try:
        return await store.search_profiles(prefix, exclude_id=current_user_id, limit=limit)
    except StoreError as exc:
        logger.warning("profile search failed query=%r", prefix, exc_info=exc)
        return []
