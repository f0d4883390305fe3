import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Uuid

from .base import Base, JSONType, utcnow


class SavedSearch(Base):
    __tablename__ = "saved_searches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    household_id = Column(Uuid, ForeignKey("households.id", ondelete="SET NULL"), index=True)
    name = Column(String(100), nullable=False)
    filters = Column(JSONType, nullable=False, default=dict)
    notify = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
