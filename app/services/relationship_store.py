from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.friend_request import FRIEND_REQUEST_PENDING, FriendRequest
from app.models.friendship import Friendship
from app.models.person import Person
from app.models.place import Place
from app.models.profile import Profile


class StoreError(RuntimeError):
    pass


def _request_between(a: UUID, b: UUID):
    return sa.or_(
        sa.and_(FriendRequest.from_user_id == a, FriendRequest.to_user_id == b),
        sa.and_(FriendRequest.from_user_id == b, FriendRequest.to_user_id == a),
    )


def _friendship_between(a: UUID, b: UUID):
    return sa.or_(
        sa.and_(Friendship.user_id_1 == a, Friendship.user_id_2 == b),
        sa.and_(Friendship.user_id_1 == b, Friendship.user_id_2 == a),
    )


class RelationshipStore:
    """Typed reads and writes over profiles, friend requests and friendships.

    Every call opens its own short session. Database failures surface as
    StoreError; a query that matches nothing returns an empty result.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def _all(self, q) -> list:
        async with self._session() as db:
            return list((await db.execute(q)).scalars().unique().all())

    async def _first(self, q):
        async with self._session() as db:
            return (await db.execute(q.limit(1))).scalars().first()

    # ─────────────────────────────────────────────
    # Profiles
    # ─────────────────────────────────────────────

    async def search_profiles(self, prefix: str, *, exclude_id: UUID | None, limit: int) -> list[Profile]:
        q = (
            sa.select(Profile)
            .where(Profile.username.istartswith(prefix, autoescape=True))
            .order_by(Profile.username.asc())
            .limit(limit)
        )
        if exclude_id is not None:
            q = q.where(Profile.id != exclude_id)
        return await self._all(q)

    async def get_profile(self, profile_id: UUID) -> Profile | None:
        return await self._first(sa.select(Profile).where(Profile.id == profile_id))

    async def get_profiles(self, profile_ids: Iterable[UUID]) -> list[Profile]:
        ids = list(dict.fromkeys(profile_ids))
        if not ids:
            return []
        q = sa.select(Profile).where(Profile.id.in_(ids)).order_by(Profile.username.asc())
        return await self._all(q)

    # ─────────────────────────────────────────────
    # Friend requests
    # ─────────────────────────────────────────────

    async def outgoing_requests(self, user_id: UUID) -> list[FriendRequest]:
        q = (
            sa.select(FriendRequest)
            .where(FriendRequest.from_user_id == user_id)
            .order_by(FriendRequest.created_at.asc())
        )
        return await self._all(q)

    async def incoming_requests(self, user_id: UUID) -> list[FriendRequest]:
        q = (
            sa.select(FriendRequest)
            .where(FriendRequest.to_user_id == user_id)
            .order_by(FriendRequest.created_at.asc())
        )
        return await self._all(q)

    async def find_request(self, from_user_id: UUID, to_user_id: UUID) -> FriendRequest | None:
        q = sa.select(FriendRequest).where(
            FriendRequest.from_user_id == from_user_id,
            FriendRequest.to_user_id == to_user_id,
        )
        return await self._first(q)

    async def find_request_between(self, a: UUID, b: UUID) -> FriendRequest | None:
        return await self._first(sa.select(FriendRequest).where(_request_between(a, b)))

    async def create_request(self, from_user_id: UUID, to_user_id: UUID) -> FriendRequest:
        request = FriendRequest(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            status=FRIEND_REQUEST_PENDING,
        )
        async with self._session() as db:
            db.add(request)
            await db.commit()
            await db.refresh(request)
        return request

    async def delete_request(self, request_id: UUID, *, to_user_id: UUID | None = None) -> bool:
        """Delete one request by id. Returns False when no row matched."""
        q = sa.delete(FriendRequest).where(FriendRequest.id == request_id)
        if to_user_id is not None:
            q = q.where(FriendRequest.to_user_id == to_user_id)
        async with self._session() as db:
            result = await db.execute(q)
            await db.commit()
        return (result.rowcount or 0) > 0

    # ─────────────────────────────────────────────
    # Friendships
    # ─────────────────────────────────────────────

    async def friendships_for(self, user_id: UUID) -> list[Friendship]:
        q = (
            sa.select(Friendship)
            .where(sa.or_(Friendship.user_id_1 == user_id, Friendship.user_id_2 == user_id))
            .order_by(Friendship.created_at.asc())
        )
        return await self._all(q)

    async def find_friendship_between(self, a: UUID, b: UUID) -> Friendship | None:
        return await self._first(sa.select(Friendship).where(_friendship_between(a, b)))

    async def create_friendship(self, user_id_1: UUID, user_id_2: UUID) -> Friendship:
        friendship = Friendship(user_id_1=user_id_1, user_id_2=user_id_2)
        async with self._session() as db:
            db.add(friendship)
            await db.commit()
            await db.refresh(friendship)
        return friendship

    # ─────────────────────────────────────────────
    # Map data (read-only)
    # ─────────────────────────────────────────────

    async def places_for(self, user_id: UUID) -> list[Place]:
        q = sa.select(Place).where(Place.user_id == user_id).order_by(Place.created_at.asc())
        return await self._all(q)

    async def people_for(self, user_id: UUID) -> list[Person]:
        q = sa.select(Person).where(Person.user_id == user_id).order_by(Person.created_at.asc())
        return await self._all(q)
