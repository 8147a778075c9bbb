import app.db.base  # noqa: F401  (mappers need every model registered)

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import settings


engine_kwargs: dict[str, object] = {
    # query tracing for local DEBUG runs only
    "echo": settings.env == "local" and settings.log_level == "DEBUG",
    "pool_pre_ping": True,
}
if settings.env == "test" or settings.database_url.startswith("sqlite"):
    engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(
    settings.database_url,
    **engine_kwargs,
)

# RelationshipStore opens one short session per call from this factory.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
)
