from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from homematch.models.interaction import InteractionType
from homematch.models.resolution import ResolutionType


class PropertySummary(BaseModel):
    id: UUID
    address: str
    price: float
    bedrooms: int
    bathrooms: float
    images: Optional[List[str]] = None


class MutualLike(BaseModel):
    property_id: UUID
    liked_by_count: int
    first_liked_at: datetime
    last_liked_at: datetime
    user_ids: List[UUID]
    property: Optional[PropertySummary] = None


class HouseholdActivityItem(BaseModel):
    id: UUID
    user_id: UUID
    property_id: UUID
    interaction_type: InteractionType
    created_at: datetime
    user_display_name: str
    user_email: Optional[str] = None
    property_address: str
    property_price: float
    property_bedrooms: int
    property_bathrooms: float
    property_images: Optional[List[str]] = None
    is_mutual: bool = False


class HouseholdStats(BaseModel):
    total_mutual_likes: int
    total_household_likes: int
    activity_streak_days: int
    last_mutual_like_at: Optional[datetime] = None


class DisputedPropertySummary(BaseModel):
    address: str = "Unknown Address"
    price: float = 0
    bedrooms: int = 0
    bathrooms: float = 0
    square_feet: Optional[int] = None
    images: List[str] = []
    listing_status: str = "unknown"


class DisputePartner(BaseModel):
    user_id: UUID
    user_name: str
    user_email: str = ""
    interaction_type: InteractionType
    created_at: datetime
    score_data: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class DisputedProperty(BaseModel):
    property_id: UUID
    property: DisputedPropertySummary
    partner1: DisputePartner
    partner2: DisputePartner
    status: str = "pending"
    last_updated: datetime


class DisputeResolutionRequest(BaseModel):
    property_id: UUID
    resolution_type: ResolutionType
