from datetime import datetime
from typing import List, Literal, NamedTuple, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from homematch.models.base import as_utc
from homematch.models.interaction import InteractionType
from homematch.schemas.property import PropertyOut


class InteractionCreate(BaseModel):
    propertyId: UUID
    type: InteractionType


class InteractionOut(BaseModel):
    id: UUID
    user_id: UUID
    property_id: UUID
    household_id: Optional[UUID] = None
    interaction_type: InteractionType
    created_at: datetime

    class Config:
        from_attributes = True


class InteractionSummary(BaseModel):
    liked: int = 0
    passed: int = 0
    viewed: int = 0


class InteractionPage(BaseModel):
    items: List[PropertyOut]
    nextCursor: Optional[str] = None


InteractionQueryType = Literal["summary", "like", "dislike", "skip", "view"]


class InteractionCursor(NamedTuple):
    """Position after the last item of a page; ``id`` breaks ``created_at`` ties."""

    created_at: datetime
    id: Optional[UUID] = None

    def encode(self) -> str:
        return f"{self.created_at.isoformat()}|{self.id}"


class InteractionQuery(BaseModel):
    type: InteractionQueryType = "summary"
    cursor: Optional[InteractionCursor] = None
    limit: int = Field(default=20, ge=1, le=100)

    @field_validator("cursor", mode="before")
    def parse_cursor(cls, v):
        if v is None or isinstance(v, InteractionCursor):
            return v
        timestamp, _, interaction_id = str(v).partition("|")
        try:
            created_at = as_utc(datetime.fromisoformat(timestamp))
            return InteractionCursor(created_at, UUID(interaction_id) if interaction_id else None)
        except ValueError:
            raise ValueError("Invalid cursor")
