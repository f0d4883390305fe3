import time
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from homematch.database import get_session
from homematch.dependencies.auth import get_current_profile
from homematch.models import UserProfile
from homematch.schemas.couples import DisputeResolutionRequest
from homematch.services.couples import CouplesService
from homematch.services.properties import PropertyService, format_address
from homematch.utils.pagination import clamp_limit_offset

logger = get_logger()
router = APIRouter(prefix="/api/couples", tags=["couples"])

MUTUAL_LIKE_MILESTONES = (1, 5, 10, 25, 50, 100)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


@router.get("/mutual-likes")
async def mutual_likes(
    includeProperties: bool = False,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    started = time.perf_counter()
    likes = await CouplesService(db).get_mutual_likes(profile.id, include_properties=includeProperties)
    return {
        "mutualLikes": [ml.model_dump(mode="json", exclude_none=not includeProperties) for ml in likes],
        "performance": {"totalTime": _elapsed_ms(started), "count": len(likes)},
    }


@router.get("/activity")
async def household_activity(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    started = time.perf_counter()
    limit_value, offset_value = clamp_limit_offset(limit, offset)
    activity = await CouplesService(db).get_household_activity(profile.id, limit_value, offset_value)
    return {
        "activity": [item.model_dump(mode="json") for item in activity],
        "performance": {"totalTime": _elapsed_ms(started), "count": len(activity)},
    }


@router.get("/stats")
async def household_stats(
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    stats = await CouplesService(db).get_household_stats(profile.id)
    if stats is None:
        raise HTTPException(status_code=404, detail="Household not found")
    return {"stats": stats.model_dump(mode="json")}


@router.get("/check-mutual")
async def check_mutual(
    propertyId: Optional[str] = None,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    if not propertyId or not propertyId.strip():
        raise HTTPException(status_code=400, detail="Property ID is required")
    try:
        property_id = UUID(propertyId.strip())
    except ValueError:
        # Unknown ids simply aren't mutual
        return {"isMutual": False}

    service = CouplesService(db)
    likes = await service.get_mutual_likes(profile.id)
    match = next((ml for ml in likes if ml.property_id == property_id), None)
    if match is None or profile.id not in match.user_ids:
        return {"isMutual": False}

    members = {m.id: m for m in await service.get_members(profile.household_id)}
    partner = next((members[uid] for uid in match.user_ids if uid != profile.id and uid in members), None)
    prop = await PropertyService(db).get_property(property_id)
    if partner is None or prop is None:
        return {"isMutual": False}

    body = {
        "isMutual": True,
        "partnerName": partner.display_name or partner.email or "Your partner",
        "propertyAddress": format_address(prop),
    }
    stats = await service.get_household_stats(profile.id)
    if stats is not None:
        body["streak"] = stats.activity_streak_days
        if stats.total_mutual_likes in MUTUAL_LIKE_MILESTONES:
            body["milestone"] = {"type": "mutual_likes", "count": stats.total_mutual_likes}
    return body


@router.get("/disputed")
async def disputed_properties(
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    started = time.perf_counter()
    disputed = await CouplesService(db).get_disputed_properties(profile.id)
    if disputed is None:
        raise HTTPException(status_code=404, detail="No household found")
    return {
        "disputedProperties": [d.model_dump(mode="json") for d in disputed],
        "performance": {"totalTime": _elapsed_ms(started), "count": len(disputed)},
    }


@router.patch("/disputed")
async def resolve_disputed(
    request: DisputeResolutionRequest,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    resolution = await CouplesService(db).resolve_disputed_property(
        profile.id, request.property_id, request.resolution_type
    )
    if resolution is None:
        raise HTTPException(status_code=404, detail="No household found")
    return {
        "success": True,
        "property_id": str(resolution.property_id),
        "resolution_type": resolution.resolution_type.value,
        "timestamp": resolution.resolved_at.isoformat(),
    }
