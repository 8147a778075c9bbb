from __future__ import annotations

import enum
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    success = "success"
    error = "error"
    info = "info"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str
    user_id: UUID | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[Notification], None]


class NotificationBus:
    """Fire-and-forget delivery of user-facing notifications.

    Owned by the composition root. Listeners are called synchronously in
    registration order; a failing listener is logged and skipped.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def notify(self, kind: NotificationKind | str, message: str, *, user_id: UUID | None = None) -> Notification:
        notification = Notification(kind=NotificationKind(kind), message=message, user_id=user_id)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("notification listener failed kind=%s", notification.kind.value)
        return notification

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
