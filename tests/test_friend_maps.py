import uuid

import pytest

from app.models.friendship import Friendship
from app.models.person import Person
from app.models.place import Place
from app.services.friend_maps import load_friend_map

pytestmark = pytest.mark.anyio


@pytest.fixture
def map_factory(add_rows):
    async def _create(owner):
        place = await add_rows(
            Place(user_id=owner.id, name="Lisbon flat", country="Portugal", latitude=38.72, longitude=-9.14)
        )
        person = await add_rows(
            Person(user_id=owner.id, place_id=place.id, name="Rita", home_country="Portugal")
        )
        return place, person

    return _create


async def test_friend_sees_places_and_people(store, profile_factory, add_rows, map_factory):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")
    await add_rows(Friendship(user_id_1=bob.id, user_id_2=alice.id))
    place, person = await map_factory(bob)

    friend_map = await load_friend_map(store, alice.id, bob.id)

    assert friend_map.friend_id == bob.id
    assert [p.id for p in friend_map.places] == [place.id]
    assert [p.id for p in friend_map.people] == [person.id]
    assert friend_map.people[0].place.name == "Lisbon flat"


async def test_non_friend_is_refused(store, profile_factory, map_factory):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")
    await map_factory(bob)

    with pytest.raises(PermissionError):
        await load_friend_map(store, alice.id, bob.id)


async def test_own_map_and_unknown_user(store, profile_factory):
    alice = await profile_factory("alice")

    with pytest.raises(ValueError, match="cannot_view_self"):
        await load_friend_map(store, alice.id, alice.id)
    with pytest.raises(ValueError, match="not_found"):
        await load_friend_map(store, alice.id, uuid.uuid4())


async def test_map_endpoint(client, act_as, profile_factory, add_rows, map_factory):
    alice = await profile_factory("alice")
    bob = await profile_factory("bob")
    carol = await profile_factory("carol")
    await add_rows(Friendship(user_id_1=alice.id, user_id_2=bob.id))
    await map_factory(bob)
    await map_factory(carol)

    act_as(client, alice)

    r = await client.get(f"/friends/{bob.id}/map")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["friend_id"] == str(bob.id)
    assert [p["name"] for p in body["places"]] == ["Lisbon flat"]
    assert body["people"][0]["name"] == "Rita"
    assert body["people"][0]["place"]["country"] == "Portugal"

    r = await client.get(f"/friends/{carol.id}/map")
    assert r.status_code == 403
    assert r.json()["detail"] == "Only friends can view this map"

    r = await client.get(f"/friends/{alice.id}/map")
    assert r.status_code == 400

    r = await client.get(f"/friends/{uuid.uuid4()}/map")
    assert r.status_code == 404
    assert r.json()["detail"] == "User not found"
