from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Uuid

from .base import Base, JSONType, utcnow


class UserProfile(Base):
    __tablename__ = "user_profiles"

    # Same id as the hosted auth user; no default on purpose
    id = Column(Uuid, primary_key=True)
    email = Column(String(255))
    display_name = Column(String(100))
    household_id = Column(Uuid, ForeignKey("households.id", ondelete="SET NULL"), index=True)
    onboarding_completed = Column(Boolean, default=False)
    preferences = Column(JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
