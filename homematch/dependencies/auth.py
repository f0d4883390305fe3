from typing import Optional

import httpx
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pybreaker import CircuitBreaker, CircuitBreakerError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from homematch.config import settings
from homematch.database import get_session
from homematch.models import UserProfile
from homematch.services.users import UserService

logger = get_logger()
security = HTTPBearer(auto_error=False)
breaker = CircuitBreaker(fail_max=3, reset_timeout=60)


async def verify_token(token: str) -> Optional[dict]:
    """Ask the hosted auth service who owns ``token``; ``None`` if nobody does."""
    try:
        with breaker.calling():
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/user",
                    headers={"Authorization": f"Bearer {token}", "apikey": settings.SUPABASE_ANON_KEY},
                )
            if response.status_code >= 500:
                response.raise_for_status()
    except CircuitBreakerError:
        logger.error("Auth circuit open")
        raise HTTPException(status_code=503, detail="Authentication service unavailable")
    except httpx.HTTPError as e:
        logger.error("Token verification failed", error=str(e))
        raise HTTPException(status_code=503, detail="Authentication service unavailable")
    if response.status_code != 200:
        logger.warning("Token rejected", status_code=response.status_code)
        return None
    user = response.json()
    if not user.get("id"):
        return None
    return user


async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Security(security)) -> dict:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = await verify_token(credentials.credentials)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


async def get_current_profile(
    user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_session)
) -> UserProfile:
    return await UserService(db).get_or_create_profile(user)


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    email = (user.get("email") or "").lower()
    if email not in settings.ADMIN_EMAILS:
        logger.warning("Admin access denied", user_id=user.get("id"))
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
