import ssl
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from homematch.config import settings

DB_URL = settings.DATABASE_URL
if not DB_URL:
    raise RuntimeError("DATABASE_URL not set")


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across sessions
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    kwargs = {"poolclass": NullPool}
    if settings.DATABASE_SSL and "+asyncpg" in url:
        ssl_ctx = ssl.create_default_context()
        # Managed Postgres poolers present self-signed certs
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = ssl.CERT_NONE
        kwargs["connect_args"] = {"ssl": ssl_ctx}
    return kwargs


# Create a single, shared async engine for the application
engine = create_async_engine(DB_URL, future=True, **_engine_kwargs(DB_URL))

# Create a session factory to generate new sessions
AsyncSessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Dependency for getting a session in FastAPI routes
async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionFactory() as session:
        yield session
