import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, JSONType, utcnow


class PropertyType(str, enum.Enum):
    single_family = "single_family"
    condo = "condo"
    townhome = "townhome"
    multi_family = "multi_family"
    manufactured = "manufactured"
    land = "land"
    other = "other"


class ListingStatus(str, enum.Enum):
    active = "active"
    pending = "pending"
    sold = "sold"
    for_sale = "for_sale"
    removed = "removed"


class Property(Base):
    __tablename__ = "properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    zpid = Column(String(50), unique=True)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(2), nullable=False)
    zip_code = Column(String(10), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    bedrooms = Column(Integer, nullable=False, default=0)
    bathrooms = Column(Float, nullable=False, default=0)
    square_feet = Column(Integer)
    property_type = Column(Enum(PropertyType, name="property_type"))
    images = Column(JSONType, default=list)
    description = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    neighborhood_id = Column(Uuid, ForeignKey("neighborhoods.id", ondelete="SET NULL"))
    amenities = Column(JSONType, default=list)
    year_built = Column(Integer)
    lot_size_sqft = Column(Integer)
    parking_spots = Column(Integer)
    listing_status = Column(Enum(ListingStatus, name="listing_status"), default=ListingStatus.active)
    property_hash = Column(String(64))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    neighborhood = relationship("Neighborhood", backref="properties", lazy="raise")

    __table_args__ = (
        Index("idx_properties_active_created", "is_active", "created_at"),
        Index("idx_properties_price", "price"),
        Index("idx_properties_city_state", "city", "state"),
        Index("idx_properties_lat_lng", "latitude", "longitude"),
    )
