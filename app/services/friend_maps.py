from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.models.person import Person
from app.models.place import Place
from app.services.relationship_store import RelationshipStore


@dataclass
class FriendMap:
    friend_id: UUID
    places: list[Place]
    people: list[Person]


async def load_friend_map(store: RelationshipStore, viewer_id: UUID, friend_id: UUID) -> FriendMap:
    if viewer_id == friend_id:
        raise ValueError("cannot_view_self")

    if await store.get_profile(friend_id) is None:
        raise ValueError("not_found")

    # ground truth, not the cached index: the friendship may be minutes old
    if await store.find_friendship_between(viewer_id, friend_id) is None:
        raise PermissionError("Only friends can view this map")

    places = await store.places_for(friend_id)
    people = await store.people_for(friend_id)
    return FriendMap(friend_id=friend_id, places=places, people=people)
