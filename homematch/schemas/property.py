from datetime import datetime
from typing import List, Literal, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from homematch.models.property import ListingStatus, PropertyType


class NeighborhoodOut(BaseModel):
    id: UUID
    name: str
    city: str
    state: str
    metro_area: Optional[str] = None
    bounds: Optional[dict] = None
    median_price: Optional[float] = None
    walk_score: Optional[int] = None
    transit_score: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PropertyFields(BaseModel):
    zpid: Optional[str] = None
    address: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=2, max_length=2)
    zip_code: str = Field(min_length=5, max_length=10)
    price: float = Field(ge=0)
    bedrooms: int = Field(ge=0, le=20)
    bathrooms: float = Field(ge=0, le=20)
    square_feet: Optional[int] = Field(default=None, ge=0)
    property_type: Optional[PropertyType] = None
    images: Optional[List[str]] = None
    description: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    neighborhood_id: Optional[UUID] = None
    amenities: Optional[List[str]] = None
    year_built: Optional[int] = Field(default=None, ge=1800, le=datetime.now().year + 5)
    lot_size_sqft: Optional[int] = Field(default=None, ge=0)
    parking_spots: Optional[int] = Field(default=None, ge=0, le=20)
    listing_status: Optional[ListingStatus] = ListingStatus.active
    property_hash: Optional[str] = None


class PropertyCreate(PropertyFields):
    class Config:
        json_schema_extra = {
            "example": {
                "address": "123 Main St",
                "city": "Austin",
                "state": "TX",
                "zip_code": "78701",
                "price": 525000,
                "bedrooms": 3,
                "bathrooms": 2,
                "square_feet": 1650,
                "property_type": "single_family",
                "latitude": 30.2672,
                "longitude": -97.7431,
            }
        }


class PropertyUpdate(BaseModel):
    zpid: Optional[str] = None
    address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = Field(default=None, min_length=5, max_length=10)
    price: Optional[float] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0, le=20)
    bathrooms: Optional[float] = Field(default=None, ge=0, le=20)
    square_feet: Optional[int] = Field(default=None, ge=0)
    property_type: Optional[PropertyType] = None
    images: Optional[List[str]] = None
    description: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    neighborhood_id: Optional[UUID] = None
    amenities: Optional[List[str]] = None
    year_built: Optional[int] = Field(default=None, ge=1800, le=datetime.now().year + 5)
    lot_size_sqft: Optional[int] = Field(default=None, ge=0)
    parking_spots: Optional[int] = Field(default=None, ge=0, le=20)
    listing_status: Optional[ListingStatus] = None
    property_hash: Optional[str] = None
    is_active: Optional[bool] = None


class PropertyOut(BaseModel):
    id: UUID
    zpid: Optional[str] = None
    address: str
    city: str
    state: str
    zip_code: str
    price: float
    bedrooms: int
    bathrooms: float
    square_feet: Optional[int] = None
    property_type: Optional[PropertyType] = None
    images: Optional[List[str]] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    neighborhood_id: Optional[UUID] = None
    amenities: Optional[List[str]] = None
    year_built: Optional[int] = None
    lot_size_sqft: Optional[int] = None
    parking_spots: Optional[int] = None
    listing_status: Optional[ListingStatus] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PropertyWithNeighborhood(PropertyOut):
    neighborhood: Optional[NeighborhoodOut] = None


class NearbyProperty(PropertyOut):
    distance_km: float


class CityState(BaseModel):
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=2, max_length=2)


class RadiusFilter(BaseModel):
    center: Tuple[float, float]  # [lng, lat]
    radius_km: float = Field(gt=0, le=100)

    @field_validator("center")
    def check_center(cls, v):
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v


class PropertyFilters(BaseModel):
    price_min: Optional[float] = Field(default=None, ge=0)
    price_max: Optional[float] = Field(default=None, ge=0)
    bedrooms_min: Optional[int] = Field(default=None, ge=0, le=10)
    bedrooms_max: Optional[int] = Field(default=None, ge=0, le=10)
    bathrooms_min: Optional[float] = Field(default=None, ge=0, le=10)
    bathrooms_max: Optional[float] = Field(default=None, ge=0, le=10)
    square_feet_min: Optional[int] = Field(default=None, ge=0)
    square_feet_max: Optional[int] = Field(default=None, ge=0)
    property_types: Optional[List[PropertyType]] = None
    cities: Optional[List[CityState]] = None
    neighborhoods: Optional[List[UUID]] = None
    amenities: Optional[List[str]] = None
    year_built_min: Optional[int] = Field(default=None, ge=1800)
    year_built_max: Optional[int] = Field(default=None, le=datetime.now().year + 5)
    lot_size_min: Optional[int] = Field(default=None, ge=0)
    lot_size_max: Optional[int] = Field(default=None, ge=0)
    parking_spots_min: Optional[int] = Field(default=None, ge=0)
    listing_status: Optional[List[ListingStatus]] = None
    within_radius: Optional[RadiusFilter] = None

    @model_validator(mode="after")
    def check_ranges(self):
        for low, high in (
            ("price_min", "price_max"),
            ("bedrooms_min", "bedrooms_max"),
            ("bathrooms_min", "bathrooms_max"),
            ("square_feet_min", "square_feet_max"),
            ("year_built_min", "year_built_max"),
            ("lot_size_min", "lot_size_max"),
        ):
            lo, hi = getattr(self, low), getattr(self, high)
            if lo is not None and hi is not None and lo > hi:
                raise ValueError(f"{low} must be less than or equal to {high}")
        return self


SortField = Literal["price", "created_at", "bedrooms", "bathrooms", "square_feet", "year_built"]


class PropertySort(BaseModel):
    field: SortField
    direction: Literal["asc", "desc"] = "asc"


class PropertyPagination(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort: Optional[PropertySort] = None


class PropertySearchRequest(BaseModel):
    filters: PropertyFilters = Field(default_factory=PropertyFilters)
    pagination: PropertyPagination = Field(default_factory=PropertyPagination)


class PropertySearchResponse(BaseModel):
    properties: List[PropertyWithNeighborhood]
    total: int
    page: int
    limit: int


class MarketingCard(BaseModel):
    zpid: str
    imageUrl: Optional[str] = None
    price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
