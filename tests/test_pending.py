import uuid

import pytest

from app.services.pending import PendingOperationTracker


def test_begin_end_round_trip():
    tracker = PendingOperationTracker()
    key = uuid.uuid4()

    assert tracker.is_pending(key) is False
    tracker.begin(key)
    assert tracker.is_pending(key) is True
    tracker.end(key)
    assert tracker.is_pending(key) is False


def test_begin_twice_is_rejected():
    tracker = PendingOperationTracker()
    key = uuid.uuid4()
    tracker.begin(key)

    with pytest.raises(ValueError, match="already_pending"):
        tracker.begin(key)


def test_end_unknown_id_is_harmless():
    tracker = PendingOperationTracker()
    tracker.end(uuid.uuid4())
    assert len(tracker) == 0


def test_hold_releases_even_when_the_block_raises():
    tracker = PendingOperationTracker()
    key = uuid.uuid4()

    with pytest.raises(RuntimeError):
        with tracker.hold(key):
            assert tracker.is_pending(key)
            raise RuntimeError("boom")

    assert tracker.is_pending(key) is False


def test_snapshot_is_a_frozen_copy():
    tracker = PendingOperationTracker()
    a, b = uuid.uuid4(), uuid.uuid4()
    tracker.begin(a)
    snap = tracker.snapshot()
    tracker.begin(b)

    assert snap == frozenset({a})
    assert tracker.snapshot() == frozenset({a, b})
