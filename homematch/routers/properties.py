from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from homematch.database import get_session
from homematch.dependencies.auth import get_current_user, require_admin
from homematch.schemas.property import (
    MarketingCard,
    NearbyProperty,
    NeighborhoodOut,
    PropertyCreate,
    PropertyFilters,
    PropertyOut,
    PropertyPagination,
    PropertySearchRequest,
    PropertySearchResponse,
    PropertyUpdate,
    PropertyWithNeighborhood,
)
from homematch.services.properties import PropertyService

logger = get_logger()
router = APIRouter(prefix="/api", tags=["properties"])


def _split(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


def _parse_cities(value: Optional[str]) -> Optional[List[dict]]:
    """``Austin|TX,Denver|CO`` -> [{city, state}, ...]"""
    pairs = []
    for item in _split(value) or []:
        city, _, state = item.partition("|")
        pairs.append({"city": city.strip(), "state": state.strip()})
    return pairs or None


@router.get("/properties", response_model=PropertySearchResponse)
async def list_properties(
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
    bedrooms_min: Optional[int] = None,
    bedrooms_max: Optional[int] = None,
    bathrooms_min: Optional[float] = None,
    bathrooms_max: Optional[float] = None,
    square_feet_min: Optional[int] = None,
    square_feet_max: Optional[int] = None,
    year_built_min: Optional[int] = None,
    year_built_max: Optional[int] = None,
    lot_size_min: Optional[int] = None,
    lot_size_max: Optional[int] = None,
    parking_spots_min: Optional[int] = None,
    property_types: Optional[str] = None,
    neighborhoods: Optional[str] = None,
    amenities: Optional[str] = None,
    listing_status: Optional[str] = None,
    cities: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_km: Optional[float] = None,
    page: int = 1,
    limit: int = 20,
    sort: Optional[str] = None,
    direction: str = "asc",
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    raw_filters = {
        "price_min": price_min,
        "price_max": price_max,
        "bedrooms_min": bedrooms_min,
        "bedrooms_max": bedrooms_max,
        "bathrooms_min": bathrooms_min,
        "bathrooms_max": bathrooms_max,
        "square_feet_min": square_feet_min,
        "square_feet_max": square_feet_max,
        "year_built_min": year_built_min,
        "year_built_max": year_built_max,
        "lot_size_min": lot_size_min,
        "lot_size_max": lot_size_max,
        "parking_spots_min": parking_spots_min,
        "property_types": _split(property_types),
        "neighborhoods": _split(neighborhoods),
        "amenities": _split(amenities),
        "listing_status": _split(listing_status),
        "cities": _parse_cities(cities),
    }
    if lat is not None and lng is not None and radius_km is not None:
        raw_filters["within_radius"] = {"center": [lng, lat], "radius_km": radius_km}
    raw_pagination = {"page": page, "limit": limit}
    if sort:
        raw_pagination["sort"] = {"field": sort, "direction": direction}
    try:
        filters = PropertyFilters.model_validate({k: v for k, v in raw_filters.items() if v is not None})
        pagination = PropertyPagination.model_validate(raw_pagination)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors())
    return await PropertyService(db).search_properties(filters, pagination)


@router.post("/properties/search", response_model=PropertySearchResponse)
async def search_properties(
    request: PropertySearchRequest,
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await PropertyService(db).search_properties(request.filters, request.pagination)


@router.get("/properties/nearby", response_model=List[NearbyProperty])
async def nearby_properties(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(5, gt=0, le=100),
    limit: int = Query(50, ge=1, le=100),
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    nearby = await PropertyService(db).get_properties_within_radius(lat, lng, radius_km, limit)
    return [
        NearbyProperty(**PropertyOut.model_validate(item["property"]).model_dump(), distance_km=item["distance_km"])
        for item in nearby
    ]


@router.get("/properties/marketing", response_model=List[MarketingCard])
async def marketing_properties(db: AsyncSession = Depends(get_session)):
    return await PropertyService(db).get_marketing_properties()


@router.get("/properties/{property_id}", response_model=PropertyWithNeighborhood)
async def get_property(
    property_id: UUID,
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    prop = await PropertyService(db).get_property_with_neighborhood(property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


@router.post("/properties", response_model=PropertyOut, status_code=201)
async def create_property(
    data: PropertyCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await PropertyService(db).create_property(data)


@router.patch("/properties/{property_id}", response_model=PropertyOut)
async def update_property(
    property_id: UUID,
    data: PropertyUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await PropertyService(db).update_property(property_id, data)


@router.delete("/properties/{property_id}")
async def delete_property(
    property_id: UUID,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await PropertyService(db).delete_property(property_id)
    return {"deleted": True}


@router.get("/neighborhoods", response_model=List[NeighborhoodOut])
async def list_neighborhoods(
    city: Optional[str] = None,
    state: Optional[str] = None,
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await PropertyService(db).list_neighborhoods(city, state)


@router.get("/neighborhoods/{neighborhood_id}", response_model=NeighborhoodOut)
async def get_neighborhood(
    neighborhood_id: UUID,
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    neighborhood = await PropertyService(db).get_neighborhood(neighborhood_id)
    if neighborhood is None:
        raise HTTPException(status_code=404, detail="Neighborhood not found")
    return neighborhood


@router.get("/neighborhoods/{neighborhood_id}/properties", response_model=List[PropertyOut])
async def neighborhood_properties(
    neighborhood_id: UUID,
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    service = PropertyService(db)
    if await service.get_neighborhood(neighborhood_id) is None:
        raise HTTPException(status_code=404, detail="Neighborhood not found")
    return await service.get_properties_by_neighborhood(neighborhood_id, limit)
