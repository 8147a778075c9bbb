from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from app.api.deps import get_current_user, get_relationship_controller, get_relationship_registry
from app.api.http_errors import service_error
from app.core.config import settings
from app.models.profile import Profile
from app.schemas.friends import (
    CandidateItem,
    DeclineFriendRequest,
    FriendMapResponse,
    IncomingRequestItem,
    NotificationItem,
    PersonItem,
    PlaceItem,
    ProfileItem,
    RelationshipActionResponse,
    RelationshipStateResponse,
    SearchResponse,
    SendFriendRequest,
)
from app.services.friend_maps import load_friend_map
from app.services.friend_requests import RelationshipController
from app.services.notifications import Notification
from app.services.relationship_index import IncomingRequest, ProfileCard
from app.services.relationship_store import StoreError
from app.services.relationships import RelationshipRegistry

router = APIRouter(prefix="/friends", tags=["friends"])


def _profile_item(card: ProfileCard) -> ProfileItem:
    return ProfileItem(id=card.id, username=card.username, display_name=card.display_name, bio=card.bio)


def _incoming_item(item: IncomingRequest, controller: RelationshipController) -> IncomingRequestItem:
    return IncomingRequestItem(
        request_id=item.request_id,
        from_user_id=item.from_user_id,
        username=item.username,
        display_name=item.display_name,
        bio=item.bio,
        pending=controller.is_pending(item.from_user_id),
    )


def _notification_item(n: Notification) -> NotificationItem:
    return NotificationItem(id=n.id, kind=n.kind.value, message=n.message, created_at=n.created_at)


def _action_response(
    controller: RelationshipController,
    counterpart_id: UUID | None,
    notification: Notification | None,
) -> RelationshipActionResponse:
    if counterpart_id is None:
        state, pending = "none", False
    else:
        state = controller.state_for(counterpart_id).value
        pending = controller.is_pending(counterpart_id)
    return RelationshipActionResponse(
        user_id=counterpart_id,
        state=state,
        pending=pending,
        notifications=[_notification_item(notification)] if notification is not None else [],
    )


@router.get("/search", response_model=SearchResponse)
async def search_mates(
    q: str = Query(default="", max_length=50),
    controller: RelationshipController = Depends(get_relationship_controller),
):
    results = await controller.search(q)
    items = []
    for card in results:
        state = controller.state_for(card.id)
        items.append(
            CandidateItem(
                id=card.id,
                username=card.username,
                display_name=card.display_name,
                bio=card.bio,
                state=state.value,
                action=state.action,
                pending=controller.is_pending(card.id),
            )
        )
    return SearchResponse(
        query=q,
        debounce_ms=settings.search_debounce_ms,
        is_fetching=controller.is_fetching,
        results=items,
    )


def _state_response(controller: RelationshipController) -> RelationshipStateResponse:
    snap = controller.snapshot()
    return RelationshipStateResponse(
        is_fetching=snap.is_fetching,
        results=[_profile_item(c) for c in snap.results],
        pending=sorted(snap.pending, key=str),
        states={k: v.value for k, v in snap.states.items()},
        incoming=[_incoming_item(i, controller) for i in snap.incoming],
        friends=[_profile_item(c) for c in snap.friends],
    )


@router.get("/state", response_model=RelationshipStateResponse)
async def get_relationship_state(
    controller: RelationshipController = Depends(get_relationship_controller),
):
    return _state_response(controller)


@router.post("/state/refresh", response_model=RelationshipStateResponse)
async def refresh_relationship_state(
    controller: RelationshipController = Depends(get_relationship_controller),
):
    # Pull-based: picks up requests and accepts made by other users.
    await controller.load()
    return _state_response(controller)


@router.get("", response_model=list[ProfileItem])
async def get_friends(
    controller: RelationshipController = Depends(get_relationship_controller),
):
    return [_profile_item(c) for c in controller.index.friends()]


@router.get("/requests", response_model=list[IncomingRequestItem])
async def get_incoming_requests(
    controller: RelationshipController = Depends(get_relationship_controller),
):
    return [_incoming_item(i, controller) for i in controller.index.incoming()]


@router.post("/requests", response_model=RelationshipActionResponse)
async def send_request(
    payload: SendFriendRequest,
    controller: RelationshipController = Depends(get_relationship_controller),
):
    notification = await controller.send(payload.to_user_id)
    return _action_response(controller, payload.to_user_id, notification)


@router.post("/requests/{from_user_id}/accept", response_model=RelationshipActionResponse)
async def accept_request(
    from_user_id: UUID,
    controller: RelationshipController = Depends(get_relationship_controller),
):
    notification = await controller.accept(from_user_id)
    return _action_response(controller, from_user_id, notification)


@router.post("/requests/{request_id}/decline", response_model=RelationshipActionResponse)
async def decline_request(
    request_id: UUID,
    payload: DeclineFriendRequest | None = Body(default=None),
    controller: RelationshipController = Depends(get_relationship_controller),
):
    from_user_id = payload.from_user_id if payload is not None else None
    if from_user_id is None:
        found = controller.index.find_incoming(request_id=request_id)
        from_user_id = found.from_user_id if found is not None else None

    notification = await controller.decline(request_id, from_user_id)
    return _action_response(controller, from_user_id, notification)


@router.get("/{friend_id}/map", response_model=FriendMapResponse)
async def get_friend_map(
    friend_id: UUID,
    user: Profile = Depends(get_current_user),
    registry: RelationshipRegistry = Depends(get_relationship_registry),
):
    try:
        friend_map = await load_friend_map(registry.store, user.id, friend_id)
    except StoreError:
        raise HTTPException(status_code=503, detail="Map data unavailable")
    except (ValueError, PermissionError) as e:
        raise service_error(
            e,
            code_statuses={
                "not_found": 404,
                "cannot_view_self": 400,
            },
            detail_overrides={
                "not_found": "User not found",
                "cannot_view_self": "Use your own dashboard to view your map",
            },
            default_detail="Could not load map",
        ) from e

    return FriendMapResponse(
        friend_id=friend_map.friend_id,
        places=[PlaceItem.model_validate(p) for p in friend_map.places],
        people=[PersonItem.model_validate(p) for p in friend_map.people],
    )
