import uuid

from sqlalchemy import Column, DateTime, Float, Integer, String, Uuid

from .base import Base, JSONType, utcnow


class Neighborhood(Base):
    __tablename__ = "neighborhoods"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(50), nullable=False)
    metro_area = Column(String(100))
    bounds = Column(JSONType)  # GeoJSON Polygon
    median_price = Column(Float)
    walk_score = Column(Integer)
    transit_score = Column(Integer)
    created_at = Column(DateTime(timezone=True), default=utcnow)
