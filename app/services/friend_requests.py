from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from uuid import UUID

from app.services.notifications import Notification, NotificationBus, NotificationKind
from app.services.pending import PendingOperationTracker
from app.services.relationship_index import (
    IncomingRequest,
    ProfileCard,
    RelationshipIndex,
    RelationshipState,
)
from app.services.relationship_store import RelationshipStore, StoreError
from app.services.search import DEFAULT_RESULT_LIMIT, search_profiles

logger = logging.getLogger(__name__)

MSG_SENT = "Friend request sent"
MSG_SEND_FAILED = "Failed to send friend request"
MSG_ACCEPTED = "Friend request accepted"
MSG_ACCEPT_FAILED = "Failed to accept request"
MSG_DECLINED = "Friend request declined"
MSG_DECLINE_FAILED = "Failed to decline request"


@dataclass(frozen=True)
class RelationshipSnapshot:
    results: tuple[ProfileCard, ...]
    is_fetching: bool
    pending: frozenset
    states: dict[UUID, RelationshipState]
    incoming: tuple[IncomingRequest, ...]
    friends: tuple[ProfileCard, ...]


class RelationshipController:
    """Send / accept / decline state machine for one signed-in user.

    The only writer of the relationship index. Every operation re-checks the
    store before writing, holds the counterpart id in the pending tracker for
    its whole lifetime, and reports its outcome through the index and the
    notification bus. Nothing raises past this class.
    """

    def __init__(
        self,
        store: RelationshipStore,
        *,
        user_id: UUID,
        notifications: NotificationBus,
        pending: PendingOperationTracker | None = None,
        index: RelationshipIndex | None = None,
        search_limit: int = DEFAULT_RESULT_LIMIT,
    ):
        self.store = store
        self.user_id = user_id
        self.notifications = notifications
        self.pending = pending if pending is not None else PendingOperationTracker()
        self.index = index if index is not None else RelationshipIndex()
        self.search_limit = search_limit

        self._results: tuple[ProfileCard, ...] = ()
        self._is_fetching = False
        self._search_seq = 0

    # ─────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────

    def state_for(self, counterpart_id: UUID) -> RelationshipState:
        return self.index.state_for(counterpart_id)

    def is_pending(self, counterpart_id: UUID) -> bool:
        return self.pending.is_pending(counterpart_id)

    @property
    def results(self) -> tuple[ProfileCard, ...]:
        return self._results

    @property
    def is_fetching(self) -> bool:
        return self._is_fetching

    def snapshot(self) -> RelationshipSnapshot:
        return RelationshipSnapshot(
            results=self._results,
            is_fetching=self._is_fetching,
            pending=self.pending.snapshot(),
            states=self.index.states(),
            incoming=self.index.incoming(),
            friends=self.index.friends(),
        )

    # ─────────────────────────────────────────────
    # Load + search
    # ─────────────────────────────────────────────

    async def load(self) -> None:
        await self.index.load(self.store, self.user_id)

    async def search(self, query: str) -> tuple[ProfileCard, ...]:
        self._search_seq += 1
        seq = self._search_seq

        if not (query or "").strip():
            self._results = ()
            self._is_fetching = False
            return self._results

        self._is_fetching = True
        profiles = await search_profiles(
            self.store,
            query,
            current_user_id=self.user_id,
            limit=self.search_limit,
        )
        # A newer search started while this one was in flight; its results win.
        if seq != self._search_seq:
            return tuple(ProfileCard.from_profile(p) for p in profiles)

        self._results = tuple(ProfileCard.from_profile(p) for p in profiles)
        self._is_fetching = False
        return self._results

    # ─────────────────────────────────────────────
    # Mutations
    #
    # Each returns the notification it raised, or None when it was a
    # silent no-op, so a caller can report its own outcome only.
    # ─────────────────────────────────────────────

    async def send(self, to_id: UUID) -> Notification | None:
        if not to_id or to_id == self.user_id:
            return None
        if self.pending.is_pending(to_id):
            logger.debug("send ignored, operation in flight counterpart_id=%s", to_id)
            return None

        with self.pending.hold(to_id):
            try:
                return await self._send(to_id)
            except Exception:
                logger.exception("unexpected error sending friend request to_user_id=%s", to_id)
                return self._notify(NotificationKind.error, MSG_SEND_FAILED)

    async def _send(self, to_id: UUID) -> Notification | None:
        try:
            existing = await self.store.find_request_between(self.user_id, to_id)
        except StoreError as exc:
            logger.warning("checking existing friend requests failed to_user_id=%s", to_id, exc_info=exc)
            return self._notify(NotificationKind.error, MSG_SEND_FAILED)

        if existing is not None:
            if existing.from_user_id == self.user_id:
                self.index.set_state(to_id, RelationshipState.requested)
            else:
                self.index.set_state(to_id, RelationshipState.incoming)
                await self._remember_incoming(existing.id, to_id)
            return None

        try:
            friendship = await self.store.find_friendship_between(self.user_id, to_id)
        except StoreError as exc:
            logger.warning("checking existing friendship failed to_user_id=%s", to_id, exc_info=exc)
            return self._notify(NotificationKind.error, MSG_SEND_FAILED)

        if friendship is not None:
            self.index.set_state(to_id, RelationshipState.friends)
            return None

        try:
            await self.store.create_request(self.user_id, to_id)
        except StoreError as exc:
            logger.warning("creating friend request failed to_user_id=%s", to_id, exc_info=exc)
            return self._notify(NotificationKind.error, MSG_SEND_FAILED)

        self.index.set_state(to_id, RelationshipState.requested)
        return self._notify(NotificationKind.success, MSG_SENT)

    async def accept(self, from_id: UUID) -> Notification | None:
        if not from_id or from_id == self.user_id:
            return None
        if self.pending.is_pending(from_id):
            logger.debug("accept ignored, operation in flight counterpart_id=%s", from_id)
            return None

        with self.pending.hold(from_id):
            try:
                return await self._accept(from_id)
            except Exception:
                logger.exception("unexpected error accepting friend request from_user_id=%s", from_id)
                return self._notify(NotificationKind.error, MSG_ACCEPT_FAILED)

    async def _accept(self, from_id: UUID) -> Notification:
        try:
            request = await self.store.find_request(from_id, self.user_id)
        except StoreError as exc:
            logger.warning("finding incoming request failed from_user_id=%s", from_id, exc_info=exc)
            return self._notify(NotificationKind.error, MSG_ACCEPT_FAILED)

        if request is None:
            logger.info("accepting without a pending request row from_user_id=%s", from_id)

        # Friendship first: if this fails the request is still there to retry.
        try:
            await self.store.create_friendship(self.user_id, from_id)
        except StoreError as exc:
            logger.warning("creating friendship failed from_user_id=%s", from_id, exc_info=exc)
            return self._notify(NotificationKind.error, MSG_ACCEPT_FAILED)

        if request is not None:
            try:
                await self.store.delete_request(request.id)
            except StoreError as exc:
                logger.warning("removing accepted request failed request_id=%s", request.id, exc_info=exc)

        self.index.set_state(from_id, RelationshipState.friends)
        removed = self.index.remove_incoming(from_user_id=from_id)
        card = removed[0].card() if removed else await self._card_for(from_id)
        if card is not None:
            self.index.add_friend(card)
        return self._notify(NotificationKind.success, MSG_ACCEPTED)

    async def decline(self, request_id: UUID, from_id: UUID | None = None) -> Notification | None:
        if not request_id:
            return None

        sender = from_id
        if sender is None:
            found = self.index.find_incoming(request_id=request_id)
            sender = found.from_user_id if found is not None else None

        if sender is not None and self.pending.is_pending(sender):
            logger.debug("decline ignored, operation in flight counterpart_id=%s", sender)
            return None

        guard = self.pending.hold(sender) if sender is not None else contextlib.nullcontext()
        with guard:
            try:
                return await self._decline(request_id, sender)
            except Exception:
                logger.exception("unexpected error declining friend request request_id=%s", request_id)
                return self._notify(NotificationKind.error, MSG_DECLINE_FAILED)

    async def _decline(self, request_id: UUID, sender: UUID | None) -> Notification | None:
        try:
            deleted = await self.store.delete_request(request_id, to_user_id=self.user_id)
        except StoreError as exc:
            logger.warning("declining friend request failed request_id=%s", request_id, exc_info=exc)
            return self._notify(NotificationKind.error, MSG_DECLINE_FAILED)

        if not deleted:
            logger.info("decline matched no pending request request_id=%s", request_id)
            return None

        if sender is not None:
            self.index.clear(sender)
        self.index.remove_incoming(request_id=request_id)
        return self._notify(NotificationKind.success, MSG_DECLINED)

    # ─────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────

    async def _card_for(self, counterpart_id: UUID) -> ProfileCard | None:
        """Profile card from the last search, else from the store.

        A failed lookup only costs the list entry; the next load() fills it.
        """
        for card in self._results:
            if card.id == counterpart_id:
                return card

        try:
            profile = await self.store.get_profile(counterpart_id)
        except StoreError as exc:
            logger.warning("loading counterpart profile failed counterpart_id=%s", counterpart_id, exc_info=exc)
            return None
        if profile is None:
            logger.warning("counterpart profile missing counterpart_id=%s", counterpart_id)
            return None
        return ProfileCard.from_profile(profile)

    async def _remember_incoming(self, request_id: UUID, from_id: UUID) -> None:
        if self.index.find_incoming(from_user_id=from_id) is not None:
            return
        card = await self._card_for(from_id)
        if card is None:
            return
        self.index.add_incoming(
            IncomingRequest(
                request_id=request_id,
                from_user_id=card.id,
                username=card.username,
                display_name=card.display_name,
                bio=card.bio,
            )
        )

    def _notify(self, kind: NotificationKind, message: str) -> Notification:
        return self.notifications.notify(kind, message, user_id=self.user_id)
