from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from homematch.database import get_session
from homematch.dependencies.auth import get_current_profile
from homematch.models import UserProfile
from homematch.schemas.user import (
    HouseholdCreate,
    HouseholdJoin,
    HouseholdMember,
    HouseholdOut,
    InvitationCreate,
    InvitationOut,
    ProfileOut,
)
from homematch.services.users import UserService

router = APIRouter(prefix="/api", tags=["households"])


async def _household_body(service: UserService, household) -> dict:
    members = await service.get_household_members(household.id)
    return {
        "household": HouseholdOut.model_validate(household).model_dump(mode="json"),
        "members": [HouseholdMember.model_validate(m).model_dump(mode="json") for m in members],
    }


@router.post("/households", status_code=201)
async def create_household(
    request: HouseholdCreate,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    service = UserService(db)
    household = await service.create_household(profile.id, request)
    return await _household_body(service, household)


@router.get("/households/current")
async def current_household(
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    if profile.household_id is None:
        return {"household": None, "members": []}
    service = UserService(db)
    household = await service.get_household(profile.household_id)
    if household is None:
        return {"household": None, "members": []}
    return await _household_body(service, household)


@router.post("/households/join")
async def join_household(
    request: HouseholdJoin,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    service = UserService(db)
    household = await service.join_household(profile.id, request.invite_code)
    return await _household_body(service, household)


@router.post("/households/leave", response_model=ProfileOut)
async def leave_household(
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    return await UserService(db).leave_household(profile.id)


@router.post("/households/invitations", response_model=InvitationOut, status_code=201)
async def create_invitation(
    request: InvitationCreate,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    return await UserService(db).create_invitation(profile.id, request)


@router.post("/invitations/{token}/accept")
async def accept_invitation(
    token: str,
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
):
    service = UserService(db)
    household = await service.accept_invitation(profile.id, token)
    return await _household_body(service, household)
