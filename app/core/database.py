from collections.abc import AsyncIterator

from fastapi.requests import HTTPConnection
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .config import settings


def get_database_url() -> str:
    """Get database URL with SSL support for production databases."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    base_url = (
        f"postgresql+asyncpg://{settings.POSTGRES_USER}:"
        f"{settings.POSTGRES_PASSWORD}@{settings.POSTGRES_HOST}:"
        f"{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}"
    )

    # Hosted PostgreSQL requires SSL connections
    if ".render.com" in settings.POSTGRES_HOST or settings.ENVIRONMENT.lower() in ("production", "staging"):
        base_url += "?ssl=require"

    return base_url


def build_engine(url: str | None = None) -> AsyncEngine:
    url = url or get_database_url()
    if url.startswith("sqlite"):
        if url.endswith("://") or ":memory:" in url:
            # In-memory SQLite must share one connection across the whole app
            return create_async_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(url)
    return create_async_engine(url, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


engine = build_engine()
SessionLocal = build_session_factory(engine)


async def get_db(connection: HTTPConnection) -> AsyncIterator[AsyncSession]:
    session_factory = getattr(connection.app.state, "session_factory", SessionLocal)
    async with session_factory() as db:
        yield db
