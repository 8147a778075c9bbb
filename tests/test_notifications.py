import logging

import pytest

from app.services.notifications import NotificationBus, NotificationKind


def test_notify_without_listeners_is_dropped_quietly():
    bus = NotificationBus()
    n = bus.notify("info", "nobody is listening")
    assert n.kind is NotificationKind.info
    assert n.message == "nobody is listening"


def test_unsubscribe_stops_delivery():
    bus = NotificationBus()
    seen = []
    unsubscribe = bus.subscribe(seen.append)

    bus.notify(NotificationKind.success, "one")
    unsubscribe()
    unsubscribe()  # second call is a no-op
    bus.notify(NotificationKind.success, "two")

    assert [n.message for n in seen] == ["one"]
    assert bus.listener_count == 0


def test_failing_listener_does_not_block_others(caplog):
    bus = NotificationBus()
    seen = []

    def broken(_):
        raise RuntimeError("listener exploded")

    bus.subscribe(broken)
    bus.subscribe(seen.append)

    with caplog.at_level(logging.ERROR, logger="app.services.notifications"):
        bus.notify(NotificationKind.error, "still delivered")

    assert [n.message for n in seen] == ["still delivered"]
    assert "notification listener failed" in caplog.text


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        NotificationBus().notify("warning", "not a kind")
