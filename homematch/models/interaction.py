import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, JSONType, utcnow


class InteractionType(str, enum.Enum):
    like = "like"
    dislike = "dislike"
    skip = "skip"
    view = "view"


class UserPropertyInteraction(Base):
    __tablename__ = "user_property_interactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    household_id = Column(Uuid, ForeignKey("households.id", ondelete="SET NULL"))
    interaction_type = Column(Enum(InteractionType, name="interaction_type"), nullable=False)
    score_data = Column(JSONType)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    property = relationship("Property", lazy="raise")

    __table_args__ = (
        Index("idx_interactions_user_type_created", "user_id", "interaction_type", "created_at"),
        Index("idx_interactions_household_type", "household_id", "interaction_type"),
        Index("idx_interactions_property", "property_id"),
    )
