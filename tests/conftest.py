import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["ADMIN_EMAILS"] = '["admin@example.com"]'

import uuid

import pytest
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from homematch import main as main_module
from homematch.database import get_session
from homematch.dependencies.auth import get_current_user
from homematch.main import app
from homematch.models import Base
from homematch.services.storage import avatar_path, get_avatar_storage


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class AuthState:
    """Stands in for the hosted auth service; ``user`` is whoever the bearer token belongs to."""

    def __init__(self):
        self.user = None

    def login(self, user_id=None, email=None, name=None):
        user_id = user_id or uuid.uuid4()
        self.user = {
            "id": str(user_id),
            "email": email or f"user-{str(user_id)[:8]}@example.com",
            "user_metadata": {"display_name": name} if name else {},
        }
        return self.user

    def logout(self):
        self.user = None


class FakeStorage:
    def __init__(self):
        self.files = {}
        self.removed = []

    def public_url(self, path):
        return f"https://storage.test/avatars/{path}"

    async def replace_avatar(self, user_id, content, content_type):
        await self.delete_avatars(user_id)
        path = avatar_path(user_id, content_type)
        self.files[path] = content
        return self.public_url(path)

    async def delete_avatars(self, user_id):
        for path in [p for p in self.files if p.startswith(f"{user_id}/")]:
            self.files.pop(path)
            self.removed.append(path)

    async def remove(self, paths):
        for path in paths:
            self.files.pop(path, None)
            self.removed.append(path)


@pytest.fixture
def auth():
    return AuthState()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
async def client(session_factory, auth, storage, monkeypatch):
    async def override_session():
        async with session_factory() as session:
            yield session

    async def override_user():
        if auth.user is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return auth.user

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_current_user] = override_user
    app.dependency_overrides[get_avatar_storage] = lambda: storage
    monkeypatch.setattr(main_module, "AsyncSessionFactory", session_factory)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
