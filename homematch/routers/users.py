from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from homematch.database import get_session
from homematch.dependencies.auth import get_current_profile
from homematch.dependencies.rate_limit import rate_limit
from homematch.errors import DatabaseError
from homematch.models import UserProfile
from homematch.schemas.user import ProfileOut, ProfileUpdate
from homematch.services.storage import (
    AVATAR_CONTENT_TYPES,
    MAX_AVATAR_BYTES,
    AvatarStorage,
    avatar_path,
    get_avatar_storage,
)
from homematch.services.users import UserService

logger = get_logger()
router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile", response_model=ProfileOut)
async def get_profile(profile: UserProfile = Depends(get_current_profile)):
    return profile


@router.patch("/profile", response_model=ProfileOut)
async def update_profile(
    changes: ProfileUpdate,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    return await UserService(db).update_profile(profile.id, changes)


@router.post("/avatar", dependencies=[Depends(rate_limit(times=10, seconds=60))])
async def upload_avatar(
    file: Optional[UploadFile] = File(None),
    profile: UserProfile = Depends(get_current_profile),
    storage: AvatarStorage = Depends(get_avatar_storage),
    db: AsyncSession = Depends(get_session),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    if file.content_type not in AVATAR_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type. Allowed types: PNG, JPEG, WebP")
    content = await file.read()
    if len(content) > MAX_AVATAR_BYTES:
        raise HTTPException(status_code=400, detail="File size must be less than 2MB")

    url = await storage.replace_avatar(profile.id, content, file.content_type)
    try:
        await UserService(db).set_preference(profile.id, "avatar", {"type": "custom", "value": url})
    except SQLAlchemyError as e:
        logger.error("Avatar profile update failed", user_id=str(profile.id), error=str(e))
        await storage.remove([avatar_path(profile.id, file.content_type)])
        raise DatabaseError("Failed to save avatar") from e
    return {"url": url}


@router.delete("/avatar")
async def delete_avatar(
    profile: UserProfile = Depends(get_current_profile),
    storage: AvatarStorage = Depends(get_avatar_storage),
    db: AsyncSession = Depends(get_session),
):
    await storage.delete_avatars(profile.id)
    await UserService(db).set_preference(profile.id, "avatar", None)
    return {"deleted": True}


@router.get("/activity")
async def activity_summary(
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    service = UserService(db)
    summary = await service.get_user_activity_summary(profile.id)
    household = None
    if profile.household_id is not None:
        household = (await service.get_household_activity_summary(profile.household_id)).model_dump()
    return {"activity": summary.model_dump(), "household": household}
