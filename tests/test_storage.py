import json
import uuid

import httpx
import pytest

from homematch.errors import ExternalServiceError
from homematch.services import storage as storage_module
from homematch.services.storage import AvatarStorage, avatar_path

REAL_ASYNC_CLIENT = httpx.AsyncClient


@pytest.fixture(autouse=True)
def reset_breaker():
    storage_module.breaker.close()
    yield
    storage_module.breaker.close()


@pytest.fixture
def bucket(monkeypatch):
    """In-memory stand-in for the storage REST API."""
    state = {"files": {}, "requests": [], "fail_with": None}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        if state["fail_with"] is not None:
            if isinstance(state["fail_with"], Exception):
                raise state["fail_with"]
            return httpx.Response(state["fail_with"])
        path = request.url.path
        if request.method == "POST" and path == "/storage/v1/object/list/avatars":
            prefix = json.loads(request.content)["prefix"]
            names = [p.split("/", 1)[1] for p in state["files"] if p.startswith(f"{prefix}/")]
            return httpx.Response(200, json=[{"name": n} for n in names])
        if request.method == "DELETE" and path == "/storage/v1/object/avatars":
            for prefix in json.loads(request.content)["prefixes"]:
                state["files"].pop(prefix, None)
            return httpx.Response(200, json=[])
        if request.method == "POST" and path.startswith("/storage/v1/object/avatars/"):
            state["files"][path[len("/storage/v1/object/avatars/"):]] = request.content
            return httpx.Response(200, json={"Key": path})
        return httpx.Response(404)

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        storage_module.httpx, "AsyncClient", lambda **kwargs: REAL_ASYNC_CLIENT(transport=transport, **kwargs)
    )
    return state


@pytest.fixture
def avatar_storage():
    return AvatarStorage(base_url="https://storage.test/", service_key="service-key", bucket="avatars")


def test_avatar_path_uses_extension_for_type():
    user_id = uuid.uuid4()
    assert avatar_path(user_id, "image/jpeg") == f"{user_id}/avatar.jpg"
    assert avatar_path(user_id, "image/webp") == f"{user_id}/avatar.webp"


def test_public_url(avatar_storage):
    assert avatar_storage.public_url("u/avatar.png") == "https://storage.test/storage/v1/object/public/avatars/u/avatar.png"


@pytest.mark.asyncio
async def test_replace_avatar_removes_old_files(bucket, avatar_storage):
    user_id = uuid.uuid4()
    bucket["files"][f"{user_id}/avatar.png"] = b"old"
    bucket["files"]["someone-else/avatar.png"] = b"theirs"

    url = await avatar_storage.replace_avatar(user_id, b"new", "image/webp")

    assert url.endswith(f"/avatars/{user_id}/avatar.webp")
    assert bucket["files"] == {f"{user_id}/avatar.webp": b"new", "someone-else/avatar.png": b"theirs"}
    upload = bucket["requests"][-1]
    assert upload.headers["x-upsert"] == "true"
    assert upload.headers["content-type"] == "image/webp"
    assert upload.headers["authorization"] == "Bearer service-key"


@pytest.mark.asyncio
async def test_delete_avatars(bucket, avatar_storage):
    user_id = uuid.uuid4()
    bucket["files"][f"{user_id}/avatar.jpg"] = b"old"

    await avatar_storage.delete_avatars(user_id)

    assert bucket["files"] == {}


@pytest.mark.asyncio
async def test_remove_nothing_makes_no_request(bucket, avatar_storage):
    await avatar_storage.remove([])
    assert bucket["requests"] == []


@pytest.mark.asyncio
async def test_client_error_is_reported(bucket, avatar_storage):
    bucket["fail_with"] = 403
    with pytest.raises(ExternalServiceError) as exc:
        await avatar_storage.upload("u/avatar.png", b"x", "image/png")
    assert exc.value.context == {"status_code": 403}
    assert storage_module.breaker.fail_counter == 0


@pytest.mark.asyncio
async def test_server_errors_open_the_breaker(bucket, avatar_storage):
    bucket["fail_with"] = 502
    for _ in range(3):
        with pytest.raises(ExternalServiceError):
            await avatar_storage.list_user_files(uuid.uuid4())
    assert storage_module.breaker.current_state == "open"

    bucket["requests"].clear()
    with pytest.raises(ExternalServiceError):
        await avatar_storage.list_user_files(uuid.uuid4())
    assert bucket["requests"] == []


@pytest.mark.asyncio
async def test_network_errors_are_retried(bucket, avatar_storage):
    bucket["fail_with"] = httpx.ConnectError("connection refused")

    with pytest.raises(ExternalServiceError) as exc:
        await avatar_storage.list_user_files(uuid.uuid4())

    assert exc.value.message == "Storage service unavailable"
    assert len(bucket["requests"]) == 3
