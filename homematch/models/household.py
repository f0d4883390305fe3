import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, Uuid

from .base import Base, utcnow


class CollaborationMode(str, enum.Enum):
    independent = "independent"
    shared = "shared"
    weighted = "weighted"


class InvitationStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    expired = "expired"
    cancelled = "cancelled"


class Household(Base):
    __tablename__ = "households"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100))
    invite_code = Column(String(8), unique=True, nullable=False)
    collaboration_mode = Column(Enum(CollaborationMode, name="collaboration_mode"), default=CollaborationMode.shared)
    created_by = Column(Uuid)
    user_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class HouseholdInvitation(Base):
    __tablename__ = "household_invitations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    token = Column(String(64), unique=True, nullable=False, index=True)
    household_id = Column(Uuid, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(Uuid, nullable=False)
    invited_email = Column(String(255))
    invited_name = Column(String(100))
    message = Column(Text)
    status = Column(Enum(InvitationStatus, name="invitation_status"), nullable=False, default=InvitationStatus.pending)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_by = Column(Uuid)
    accepted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
