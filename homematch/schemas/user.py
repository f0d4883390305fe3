from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from homematch.models.household import CollaborationMode, InvitationStatus
from homematch.schemas.property import PropertyFilters


class ProfileOut(BaseModel):
    id: UUID
    email: Optional[str] = None
    display_name: Optional[str] = None
    household_id: Optional[UUID] = None
    onboarding_completed: Optional[bool] = False
    preferences: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    preferences: Optional[Dict[str, Any]] = None
    onboarding_completed: Optional[bool] = None


class HouseholdCreate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    collaboration_mode: CollaborationMode = CollaborationMode.shared


class HouseholdJoin(BaseModel):
    invite_code: str = Field(min_length=8, max_length=8)


class HouseholdOut(BaseModel):
    id: UUID
    name: Optional[str] = None
    invite_code: str
    collaboration_mode: Optional[CollaborationMode] = None
    created_by: Optional[UUID] = None
    user_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HouseholdMember(BaseModel):
    id: UUID
    email: Optional[str] = None
    display_name: Optional[str] = None

    class Config:
        from_attributes = True


class InvitationCreate(BaseModel):
    invited_email: EmailStr
    invited_name: Optional[str] = Field(default=None, max_length=100)
    message: Optional[str] = Field(default=None, max_length=500)


class InvitationOut(BaseModel):
    id: UUID
    token: str
    household_id: UUID
    invited_email: Optional[str] = None
    invited_name: Optional[str] = None
    message: Optional[str] = None
    status: InvitationStatus
    expires_at: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SavedSearchCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    filters: PropertyFilters = Field(default_factory=PropertyFilters)
    notify: bool = False
    share_with_household: bool = False


class SavedSearchUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    filters: Optional[PropertyFilters] = None
    notify: Optional[bool] = None


class SavedSearchOut(BaseModel):
    id: UUID
    user_id: UUID
    household_id: Optional[UUID] = None
    name: str
    filters: Dict[str, Any]
    notify: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivitySummary(BaseModel):
    likes: int = 0
    dislikes: int = 0
    skips: int = 0
    views: int = 0
    saved_searches: int = 0
    total_interactions: int = 0


class HouseholdActivitySummary(BaseModel):
    members: int = 0
    total_likes: int = 0
    total_dislikes: int = 0
    total_views: int = 0
    total_saved_searches: int = 0
    total_interactions: int = 0
