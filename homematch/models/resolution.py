import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, UniqueConstraint, Uuid

from .base import Base, utcnow


class ResolutionType(str, enum.Enum):
    scheduled_viewing = "scheduled_viewing"
    saved_for_later = "saved_for_later"
    final_pass = "final_pass"
    discussion_needed = "discussion_needed"


class HouseholdPropertyResolution(Base):
    __tablename__ = "household_property_resolutions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    household_id = Column(Uuid, ForeignKey("households.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    resolution_type = Column(Enum(ResolutionType, name="resolution_type"), nullable=False)
    resolved_by = Column(Uuid, nullable=False)
    resolved_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("household_id", "property_id", name="uq_household_property_resolution"),
    )
