import os
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

# IMPORTANT:
# Set env vars BEFORE importing app.settings/app.main (pydantic settings load at import time)
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("JWT_SECRET", "dev-test-secret")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")

import sqlalchemy as sa  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.main import app as fastapi_app  # noqa: E402
from app.db.base_class import Base  # noqa: E402
import app.db.base  # noqa: F401,E402  (register models)
from app.api.deps import get_relationship_registry  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.models.profile import Profile  # noqa: E402
from app.services.friend_requests import RelationshipController  # noqa: E402
from app.services.notifications import NotificationBus  # noqa: E402
from app.services.relationship_store import RelationshipStore  # noqa: E402
from app.services.relationships import RelationshipRegistry  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mates.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session_factory):
    return RelationshipStore(session_factory)


@pytest.fixture
def bus():
    return NotificationBus()


@pytest.fixture
def inbox(bus):
    received = []
    unsubscribe = bus.subscribe(received.append)
    yield received
    unsubscribe()


# --- Small helpers for your spine tests ---

def _unique(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}"


@pytest.fixture
def unique_str():
    return _unique


@pytest.fixture
def add_rows(session_factory):
    async def _add(*rows):
        async with session_factory() as db:
            db.add_all(rows)
            await db.commit()
            for row in rows:
                await db.refresh(row)
        return rows[0] if len(rows) == 1 else rows

    return _add


@pytest.fixture
def count_rows(session_factory):
    async def _count(model, *where) -> int:
        q = sa.select(sa.func.count()).select_from(model)
        if where:
            q = q.where(*where)
        async with session_factory() as db:
            return (await db.execute(q)).scalar_one()

    return _count


@pytest.fixture
def profile_factory(add_rows, unique_str):
    async def _create(
        username: str | None = None,
        *,
        display_name: str | None = None,
        bio: str | None = None,
    ) -> Profile:
        username = username or unique_str("user")
        return await add_rows(
            Profile(
                username=username,
                display_name=display_name or username.title(),
                bio=bio,
            )
        )

    return _create


@pytest.fixture
def controller_factory(store, bus):
    async def _create(user: Profile, *, load: bool = True) -> RelationshipController:
        controller = RelationshipController(store, user_id=user.id, notifications=bus)
        if load:
            await controller.load()
        return controller

    return _create


@pytest.fixture
def registry(store, bus):
    return RelationshipRegistry(store, bus, search_limit=5)


@pytest.fixture
async def client(registry):
    """
    Points the app's composition root at the per-test store, so HTTP calls and
    direct service calls see the same database.
    """
    fastapi_app.dependency_overrides[get_relationship_registry] = lambda: registry

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    fastapi_app.dependency_overrides.pop(get_relationship_registry, None)


@pytest.fixture
def act_as():
    def _set(client: AsyncClient, user: Profile | None):
        client.cookies.clear()
        if user is not None:
            client.cookies.set("access_token", create_access_token(str(user.id)))

    return _set
