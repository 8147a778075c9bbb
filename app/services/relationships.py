from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from uuid import UUID

from app.services.friend_requests import RelationshipController
from app.services.notifications import NotificationBus
from app.services.relationship_store import RelationshipStore
from app.services.search import DEFAULT_RESULT_LIMIT

logger = logging.getLogger(__name__)

DEFAULT_IDLE_SECONDS = 30 * 60


class RelationshipRegistry:
    """Composition root for the relationship engine.

    Owns the store and the notification bus, and keeps one controller per
    signed-in user so pending operations and the loaded index outlive a
    single HTTP request. Controllers unused for ``idle_seconds`` are dropped
    and rebuilt from the store on the next call.
    """

    def __init__(
        self,
        store: RelationshipStore,
        notifications: NotificationBus | None = None,
        *,
        search_limit: int = DEFAULT_RESULT_LIMIT,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.notifications = notifications if notifications is not None else NotificationBus()
        self.search_limit = search_limit
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._controllers: dict[UUID, RelationshipController] = {}
        self._loads: dict[UUID, asyncio.Task] = {}
        self._last_used: dict[UUID, float] = {}

    async def controller_for(self, user_id: UUID) -> RelationshipController:
        self._evict_idle()

        controller = self._controllers.get(user_id)
        if controller is None:
            controller = RelationshipController(
                self.store,
                user_id=user_id,
                notifications=self.notifications,
                search_limit=self.search_limit,
            )
            self._controllers[user_id] = controller
            self._loads[user_id] = asyncio.ensure_future(self._load(user_id, controller))
            logger.info("relationship controller created user_id=%s", user_id)
        self._last_used[user_id] = self._clock()

        # Concurrent first requests all wait on the same build.
        load = self._loads.get(user_id)
        if load is not None:
            await asyncio.shield(load)
        return controller

    async def _load(self, user_id: UUID, controller: RelationshipController) -> None:
        try:
            await controller.load()
        except Exception:
            logger.exception("relationship load failed user_id=%s", user_id)
            # the next call starts over with a fresh controller
            if self._controllers.get(user_id) is controller:
                self.forget(user_id)
            raise
        finally:
            if self._loads.get(user_id) is asyncio.current_task():
                del self._loads[user_id]

    def _evict_idle(self) -> None:
        cutoff = self._clock() - self.idle_seconds
        for user_id, last_used in list(self._last_used.items()):
            if last_used > cutoff or user_id in self._loads:
                continue
            controller = self._controllers.get(user_id)
            if controller is not None and len(controller.pending):
                continue
            logger.debug("relationship controller evicted user_id=%s", user_id)
            self.forget(user_id)

    def forget(self, user_id: UUID) -> None:
        # An in-flight build is left to finish; its controller is just dropped.
        self._controllers.pop(user_id, None)
        self._loads.pop(user_id, None)
        self._last_used.pop(user_id, None)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)
