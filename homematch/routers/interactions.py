from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from homematch.config import settings
from homematch.database import get_session
from homematch.dependencies.auth import get_current_profile
from homematch.dependencies.rate_limit import rate_limit
from homematch.models import InteractionType, UserProfile
from homematch.schemas.interaction import (
    InteractionCreate,
    InteractionOut,
    InteractionPage,
    InteractionQuery,
    InteractionSummary,
)
from homematch.schemas.property import PropertyOut
from homematch.services.users import UserService

logger = get_logger()
router = APIRouter(prefix="/api", tags=["interactions"])


@router.post("/interactions", dependencies=[Depends(rate_limit(times=settings.INTERACTION_RATE_LIMIT, seconds=60))])
async def record_interaction(
    request: InteractionCreate,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    interaction = await UserService(db).record_interaction(profile.id, request.propertyId, request.type)
    return {"interaction": InteractionOut.model_validate(interaction)}


@router.get("/interactions")
async def list_interactions(
    type: Optional[str] = "summary",
    cursor: Optional[str] = None,
    limit: Optional[str] = None,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    raw = {"type": type or "summary", "cursor": cursor or None}
    if limit is not None:
        raw["limit"] = limit
    try:
        query = InteractionQuery.model_validate(raw)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors())

    service = UserService(db)
    if query.type == "summary":
        return InteractionSummary(**await service.get_interaction_summary(profile.id))

    properties, next_cursor = await service.get_user_interactions(
        profile.id, InteractionType(query.type), cursor=query.cursor, limit=query.limit
    )
    return InteractionPage(
        items=[PropertyOut.model_validate(p) for p in properties],
        nextCursor=next_cursor,
    )
