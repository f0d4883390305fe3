from typing import List
from uuid import UUID

import httpx
from pybreaker import CircuitBreaker, CircuitBreakerError
from structlog import get_logger

from homematch.config import settings
from homematch.errors import ExternalServiceError
from homematch.utils.retry import retry_api

logger = get_logger()
breaker = CircuitBreaker(fail_max=3, reset_timeout=60)

MAX_AVATAR_BYTES = 2 * 1024 * 1024
AVATAR_CONTENT_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


def avatar_path(user_id: UUID, content_type: str) -> str:
    return f"{user_id}/avatar.{AVATAR_CONTENT_TYPES[content_type]}"


class AvatarStorage:
    """Thin client for the hosted object storage bucket that holds avatars."""

    def __init__(self, base_url: str = None, service_key: str = None, bucket: str = None, timeout: float = 10.0):
        self.base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self.service_key = service_key or settings.SUPABASE_SERVICE_ROLE_KEY
        self.bucket = bucket or settings.AVATAR_BUCKET
        self.timeout = timeout

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.service_key}", "apikey": self.service_key}

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    @retry_api(tries=3, delay=0.5, backoff=2)
    async def _send(self, method: str, url: str, headers: dict, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, headers=headers, **kwargs)

    async def _request(self, method: str, path: str, extra_headers: dict = None, **kwargs) -> httpx.Response:
        headers = {**self.headers, **(extra_headers or {})}
        try:
            with breaker.calling():
                response = await self._send(method, f"{self.base_url}{path}", headers, **kwargs)
                if response.status_code >= 500:
                    response.raise_for_status()
        except CircuitBreakerError as e:
            logger.error("Storage circuit open", error=str(e))
            raise ExternalServiceError("Storage service unavailable") from e
        except httpx.HTTPStatusError as e:
            logger.error("Storage request failed", method=method, status_code=e.response.status_code)
            raise ExternalServiceError("Storage service unavailable") from e
        except httpx.TransportError as e:
            logger.error("Storage unreachable", method=method, error=str(e))
            raise ExternalServiceError("Storage service unavailable") from e
        if response.status_code >= 400:
            logger.error("Storage request rejected", method=method, status_code=response.status_code)
            raise ExternalServiceError("Storage request failed", {"status_code": response.status_code})
        return response

    async def list_user_files(self, user_id: UUID) -> List[str]:
        response = await self._request(
            "POST", f"/storage/v1/object/list/{self.bucket}", json={"prefix": str(user_id), "limit": 100}
        )
        return [f"{user_id}/{item['name']}" for item in response.json() if item.get("name")]

    async def remove(self, paths: List[str]) -> None:
        if not paths:
            return
        await self._request("DELETE", f"/storage/v1/object/{self.bucket}", json={"prefixes": paths})

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        await self._request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{path}",
            content=content,
            extra_headers={"Content-Type": content_type, "x-upsert": "true"},
        )
        return self.public_url(path)

    async def replace_avatar(self, user_id: UUID, content: bytes, content_type: str) -> str:
        await self.remove(await self.list_user_files(user_id))
        url = await self.upload(avatar_path(user_id, content_type), content, content_type)
        logger.info("Avatar uploaded", user_id=str(user_id), size=len(content))
        return url

    async def delete_avatars(self, user_id: UUID) -> None:
        await self.remove(await self.list_user_files(user_id))
        logger.info("Avatar removed", user_id=str(user_id))


def get_avatar_storage() -> AvatarStorage:
    return AvatarStorage()
