from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


RelationshipStateValue = Literal["none", "requested", "incoming", "friends"]
CandidateAction = Literal["add", "requested", "accept", "friends"]


class ProfileItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str
    bio: str | None = None


class CandidateItem(ProfileItem):
    state: RelationshipStateValue
    action: CandidateAction
    pending: bool


class SearchResponse(BaseModel):
    query: str
    debounce_ms: int
    is_fetching: bool
    results: list[CandidateItem]


class IncomingRequestItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_id: UUID
    from_user_id: UUID
    username: str
    display_name: str
    bio: str | None = None
    pending: bool = False


class RelationshipStateResponse(BaseModel):
    is_fetching: bool
    results: list[ProfileItem]
    pending: list[UUID]
    states: dict[UUID, RelationshipStateValue]
    incoming: list[IncomingRequestItem]
    friends: list[ProfileItem]


class SendFriendRequest(BaseModel):
    to_user_id: UUID


class DeclineFriendRequest(BaseModel):
    from_user_id: UUID | None = None


class NotificationItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: Literal["success", "error", "info"]
    message: str
    created_at: datetime


class RelationshipActionResponse(BaseModel):
    user_id: UUID | None
    state: RelationshipStateValue
    pending: bool
    notifications: list[NotificationItem]


class PlaceItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    country: str
    latitude: float
    longitude: float
    description: str
    photo_url: str | None = None


class PersonItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    place_id: UUID | None = None
    name: str
    home_country: str
    home_latitude: float | None = None
    home_longitude: float | None = None
    description: str
    instagram_handle: str | None = None
    photo_url: str | None = None
    place: PlaceItem | None = None


class FriendMapResponse(BaseModel):
    friend_id: UUID
    places: list[PlaceItem]
    people: list[PersonItem]
