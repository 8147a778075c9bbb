from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from uuid import UUID

from app.models.profile import Profile
from app.services.relationship_store import RelationshipStore, StoreError

logger = logging.getLogger(__name__)


class RelationshipState(str, enum.Enum):
    none = "none"
    requested = "requested"   # I sent, waiting on them
    incoming = "incoming"     # they sent, waiting on me
    friends = "friends"

    @property
    def action(self) -> str:
        """What a candidate row offers the user in this state."""
        return _ACTIONS[self]


_ACTIONS = {
    RelationshipState.none: "add",
    RelationshipState.requested: "requested",
    RelationshipState.incoming: "accept",
    RelationshipState.friends: "friends",
}


@dataclass(frozen=True)
class ProfileCard:
    id: UUID
    username: str
    display_name: str
    bio: str | None = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileCard":
        return cls(
            id=profile.id,
            username=profile.username,
            display_name=profile.display_name,
            bio=profile.bio,
        )


@dataclass(frozen=True)
class IncomingRequest:
    request_id: UUID
    from_user_id: UUID
    username: str
    display_name: str
    bio: str | None = None

    def card(self) -> ProfileCard:
        return ProfileCard(
            id=self.from_user_id,
            username=self.username,
            display_name=self.display_name,
            bio=self.bio,
        )


class RelationshipIndex:
    """Per-counterpart relationship state for one signed-in user.

    A single mapping holds the state, so a counterpart can never be in two
    states at once. Counterparts without an entry are in state ``none``.
    """

    def __init__(self) -> None:
        self._states: dict[UUID, RelationshipState] = {}
        self._incoming: list[IncomingRequest] = []
        self._friends: list[ProfileCard] = []

    # ─────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────

    def state_for(self, counterpart_id: UUID) -> RelationshipState:
        return self._states.get(counterpart_id, RelationshipState.none)

    def states(self) -> dict[UUID, RelationshipState]:
        return dict(self._states)

    def incoming(self) -> tuple[IncomingRequest, ...]:
        return tuple(self._incoming)

    def friends(self) -> tuple[ProfileCard, ...]:
        return tuple(self._friends)

    def find_incoming(
        self,
        *,
        request_id: UUID | None = None,
        from_user_id: UUID | None = None,
    ) -> IncomingRequest | None:
        for item in self._incoming:
            if request_id is not None and item.request_id == request_id:
                return item
            if from_user_id is not None and item.from_user_id == from_user_id:
                return item
        return None

    # ─────────────────────────────────────────────
    # Incremental updates (controller only)
    # ─────────────────────────────────────────────

    def set_state(self, counterpart_id: UUID, state: RelationshipState) -> None:
        if state is RelationshipState.none:
            self._states.pop(counterpart_id, None)
        else:
            self._states[counterpart_id] = state

    def clear(self, counterpart_id: UUID) -> None:
        self._states.pop(counterpart_id, None)

    def remove_incoming(
        self,
        *,
        request_id: UUID | None = None,
        from_user_id: UUID | None = None,
    ) -> list[IncomingRequest]:
        removed = [
            item
            for item in self._incoming
            if (request_id is not None and item.request_id == request_id)
            or (from_user_id is not None and item.from_user_id == from_user_id)
        ]
        if removed:
            self._incoming = [item for item in self._incoming if item not in removed]
        return removed

    def add_incoming(self, item: IncomingRequest) -> bool:
        if any(i.from_user_id == item.from_user_id for i in self._incoming):
            return False
        self._incoming.append(item)
        return True

    def add_friend(self, card: ProfileCard) -> bool:
        if any(f.id == card.id for f in self._friends):
            return False
        self._friends.append(card)
        return True

    # ─────────────────────────────────────────────
    # Wholesale rebuild
    # ─────────────────────────────────────────────

    async def load(self, store: RelationshipStore, user_id: UUID) -> None:
        """Rebuild from outgoing requests, incoming requests and friendships.

        Each step fails on its own: a store error is logged and the step's
        part of the index stays empty. Readers keep seeing the previous
        projection until the rebuild is complete.
        """
        fresh = RelationshipIndex()
        await fresh._load_outgoing(store, user_id)
        await fresh._load_incoming(store, user_id)
        await fresh._load_friends(store, user_id)

        self._states = fresh._states
        self._incoming = fresh._incoming
        self._friends = fresh._friends

    async def _load_outgoing(self, store: RelationshipStore, user_id: UUID) -> None:
        try:
            rows = await store.outgoing_requests(user_id)
        except StoreError as exc:
            logger.warning("loading outgoing requests failed user_id=%s", user_id, exc_info=exc)
            return

        for row in rows:
            self._states[row.to_user_id] = RelationshipState.requested

    async def _load_incoming(self, store: RelationshipStore, user_id: UUID) -> None:
        try:
            rows = await store.incoming_requests(user_id)
        except StoreError as exc:
            logger.warning("loading incoming requests failed user_id=%s", user_id, exc_info=exc)
            return

        for row in rows:
            if self._states.get(row.from_user_id) is RelationshipState.requested:
                logger.warning(
                    "requests pending in both directions user_id=%s counterpart_id=%s",
                    user_id,
                    row.from_user_id,
                )
            self._states[row.from_user_id] = RelationshipState.incoming

        if not rows:
            return

        try:
            profiles = await store.get_profiles(row.from_user_id for row in rows)
        except StoreError as exc:
            logger.warning("loading sender profiles failed user_id=%s", user_id, exc_info=exc)
            return

        by_id = {p.id: p for p in profiles}
        for row in rows:
            profile = by_id.get(row.from_user_id)
            if profile is None:
                logger.warning("sender profile missing request_id=%s from_user_id=%s", row.id, row.from_user_id)
                continue
            self.add_incoming(
                IncomingRequest(
                    request_id=row.id,
                    from_user_id=profile.id,
                    username=profile.username,
                    display_name=profile.display_name,
                    bio=profile.bio,
                )
            )

    async def _load_friends(self, store: RelationshipStore, user_id: UUID) -> None:
        try:
            rows = await store.friendships_for(user_id)
        except StoreError as exc:
            logger.warning("loading friendships failed user_id=%s", user_id, exc_info=exc)
            return

        friend_ids: list[UUID] = []
        for row in rows:
            other = row.user_id_2 if row.user_id_1 == user_id else row.user_id_1
            previous = self._states.get(other)
            if previous in (RelationshipState.requested, RelationshipState.incoming):
                # Request row outlived the accept; the friendship wins.
                logger.warning(
                    "friendship and %s request both present user_id=%s counterpart_id=%s",
                    previous.value,
                    user_id,
                    other,
                )
                self.remove_incoming(from_user_id=other)
            self._states[other] = RelationshipState.friends
            friend_ids.append(other)

        if not friend_ids:
            return

        try:
            profiles = await store.get_profiles(friend_ids)
        except StoreError as exc:
            logger.warning("loading friend profiles failed user_id=%s", user_id, exc_info=exc)
            return

        for profile in profiles:
            self.add_friend(ProfileCard.from_profile(profile))
