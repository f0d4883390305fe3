from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from homematch.database import get_session
from homematch.dependencies.auth import get_current_profile
from homematch.models import UserProfile
from homematch.schemas.user import SavedSearchCreate, SavedSearchOut, SavedSearchUpdate
from homematch.services.users import UserService

router = APIRouter(prefix="/api/saved-searches", tags=["saved-searches"])


@router.get("", response_model=List[SavedSearchOut])
async def list_saved_searches(
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    return await UserService(db).list_saved_searches(profile.id)


@router.post("", response_model=SavedSearchOut, status_code=201)
async def create_saved_search(
    request: SavedSearchCreate,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    return await UserService(db).create_saved_search(profile.id, request)


@router.patch("/{search_id}", response_model=SavedSearchOut)
async def update_saved_search(
    search_id: UUID,
    request: SavedSearchUpdate,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    return await UserService(db).update_saved_search(profile.id, search_id, request)


@router.delete("/{search_id}")
async def delete_saved_search(
    search_id: UUID,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    await UserService(db).delete_saved_search(profile.id, search_id)
    return {"deleted": True}
