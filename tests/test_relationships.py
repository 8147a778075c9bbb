import asyncio

import pytest

from app.models.friend_request import FriendRequest
from app.services.relationship_index import RelationshipIndex, RelationshipState
from app.services.relationships import RelationshipRegistry

pytestmark = pytest.mark.anyio


async def test_controller_is_reused_per_user(registry, profile_factory):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")

    first = await registry.controller_for(alice.id)
    second = await registry.controller_for(alice.id)
    other = await registry.controller_for(bob.id)

    assert first is second
    assert other is not first
    assert first.notifications is registry.notifications
    assert alice.id in registry


async def test_controller_is_loaded_before_it_is_returned(registry, profile_factory, add_rows):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")
    await add_rows(FriendRequest(from_user_id=bob.id, to_user_id=alice.id))

    controller = await registry.controller_for(alice.id)

    assert controller.state_for(bob.id) is RelationshipState.incoming
    assert [i.from_user_id for i in controller.index.incoming()] == [bob.id]


async def test_concurrent_first_calls_share_one_load(registry, store, profile_factory, monkeypatch):
    alice = await profile_factory("alice")
    calls = []
    original = store.outgoing_requests

    async def counting(user_id):
        calls.append(user_id)
        await asyncio.sleep(0)
        return await original(user_id)

    monkeypatch.setattr(store, "outgoing_requests", counting)

    controllers = await asyncio.gather(*(registry.controller_for(alice.id) for _ in range(3)))

    assert len({id(c) for c in controllers}) == 1
    assert calls == [alice.id]


async def test_forget_drops_the_controller(registry, profile_factory):
    alice = await profile_factory("alice")
    first = await registry.controller_for(alice.id)

    registry.forget(alice.id)
    assert alice.id not in registry

    second = await registry.controller_for(alice.id)
    assert second is not first

    registry.forget(alice.id)
    registry.forget(alice.id)


async def test_failed_first_load_is_not_cached(registry, profile_factory, add_rows, monkeypatch):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")
    await add_rows(FriendRequest(from_user_id=bob.id, to_user_id=alice.id))

    original = RelationshipIndex.load
    failures = [RuntimeError("transient")]

    async def flaky(self, store, user_id):
        if failures:
            raise failures.pop()
        return await original(self, store, user_id)

    monkeypatch.setattr(RelationshipIndex, "load", flaky)

    with pytest.raises(RuntimeError, match="transient"):
        await registry.controller_for(alice.id)
    assert alice.id not in registry

    controller = await registry.controller_for(alice.id)
    assert controller.state_for(bob.id) is RelationshipState.incoming


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def test_idle_controllers_are_evicted(store, bus, profile_factory):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")
    clock = _Clock()
    registry = RelationshipRegistry(store, bus, idle_seconds=60, clock=clock)

    first = await registry.controller_for(alice.id)
    clock.now += 30
    await registry.controller_for(bob.id)
    assert len(registry) == 2

    clock.now += 45
    assert await registry.controller_for(bob.id) is not None
    assert alice.id not in registry
    assert len(registry) == 1

    assert await registry.controller_for(alice.id) is not first


async def test_controller_with_operation_in_flight_is_not_evicted(store, bus, profile_factory):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")
    clock = _Clock()
    registry = RelationshipRegistry(store, bus, idle_seconds=60, clock=clock)

    controller = await registry.controller_for(alice.id)
    with controller.pending.hold(bob.id):
        clock.now += 600
        await registry.controller_for(bob.id)
        assert alice.id in registry

    # once the operation settles the idle controller goes
    assert await registry.controller_for(alice.id) is not controller
