from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from structlog import get_logger

from homematch.errors import NotFoundError
from homematch.models import ListingStatus, Neighborhood, Property
from homematch.models.base import json_array_length, utcnow
from homematch.schemas.property import (
    MarketingCard,
    PropertyCreate,
    PropertyFilters,
    PropertyPagination,
    PropertyUpdate,
)
from homematch.services.filters import PropertyFilterBuilder, longitude_clause, property_filter_builder
from homematch.utils.geo import LatLng, bounding_boxes_around, calculate_distance

logger = get_logger()


def _distance_from(center: LatLng, prop: Property) -> Optional[float]:
    if prop.latitude is None or prop.longitude is None:
        return None
    return calculate_distance(center, LatLng(lat=prop.latitude, lng=prop.longitude))


def format_address(prop: Property) -> str:
    return ", ".join(part for part in (prop.address, prop.city, prop.state, prop.zip_code) if part)


class PropertyService:
    def __init__(self, session: AsyncSession, filter_builder: PropertyFilterBuilder = property_filter_builder):
        self.session = session
        self.filter_builder = filter_builder

    async def get_property(self, property_id: UUID) -> Optional[Property]:
        result = await self.session.execute(
            select(Property).where(Property.id == property_id, Property.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def get_property_with_neighborhood(self, property_id: UUID) -> Optional[Property]:
        result = await self.session.execute(
            select(Property)
            .options(selectinload(Property.neighborhood))
            .where(Property.id == property_id, Property.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def create_property(self, data: PropertyCreate) -> Property:
        prop = Property(**data.model_dump(exclude_none=True))
        self.session.add(prop)
        await self.session.commit()
        await self.session.refresh(prop)
        logger.info("Property created", property_id=str(prop.id))
        return prop

    async def update_property(self, property_id: UUID, data: PropertyUpdate) -> Property:
        prop = await self.session.get(Property, property_id)
        if prop is None:
            raise NotFoundError("Property not found", {"property_id": str(property_id)})
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(prop, field, value)
        prop.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(prop)
        logger.info("Property updated", property_id=str(property_id))
        return prop

    async def delete_property(self, property_id: UUID) -> None:
        prop = await self.session.get(Property, property_id)
        if prop is None or not prop.is_active:
            raise NotFoundError("Property not found", {"property_id": str(property_id)})
        prop.is_active = False
        prop.updated_at = utcnow()
        await self.session.commit()
        logger.info("Property deactivated", property_id=str(property_id))

    async def search_properties(self, filters: PropertyFilters, pagination: PropertyPagination) -> dict:
        stmt = select(Property).where(Property.is_active.is_(True))
        stmt = self.filter_builder.apply(stmt, filters)

        if pagination.sort:
            column = getattr(Property, pagination.sort.field)
            order = column.asc() if pagination.sort.direction == "asc" else column.desc()
        else:
            order = Property.created_at.desc()
        stmt = stmt.options(selectinload(Property.neighborhood)).order_by(order, Property.id)

        offset = (pagination.page - 1) * pagination.limit

        if filters.within_radius:
            # The SQL clause is a bounding box; trim the corners here
            lng, lat = filters.within_radius.center
            center = LatLng(lat=lat, lng=lng)
            radius = filters.within_radius.radius_km
            rows = (await self.session.execute(stmt)).scalars().all()
            matches = []
            for prop in rows:
                distance = _distance_from(center, prop)
                if distance is not None and distance <= radius:
                    matches.append(prop)
            total = len(matches)
            properties = matches[offset:offset + pagination.limit]
        else:
            count_stmt = self.filter_builder.apply(
                select(func.count()).select_from(Property).where(Property.is_active.is_(True)), filters
            )
            total = (await self.session.execute(count_stmt)).scalar_one()
            result = await self.session.execute(stmt.offset(offset).limit(pagination.limit))
            properties = list(result.scalars().all())

        logger.info("Property search executed", total=total, page=pagination.page, returned=len(properties))
        return {
            "properties": properties,
            "total": total,
            "page": pagination.page,
            "limit": pagination.limit,
        }

    async def get_properties_by_neighborhood(self, neighborhood_id: UUID, limit: int = 20) -> List[Property]:
        result = await self.session.execute(
            select(Property)
            .where(Property.neighborhood_id == neighborhood_id, Property.is_active.is_(True))
            .order_by(Property.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_properties_within_radius(
        self, lat: float, lng: float, radius_km: float, limit: int = 50
    ) -> List[dict]:
        """Active properties within ``radius_km`` of (lat, lng), nearest first.

        Returns dicts of ``{"property": Property, "distance_km": float}``.
        """
        center = LatLng(lat=lat, lng=lng)
        boxes = bounding_boxes_around(center, radius_km)
        result = await self.session.execute(
            select(Property).where(
                Property.is_active.is_(True),
                Property.latitude.between(boxes[0].south, boxes[0].north),
                longitude_clause(boxes),
            )
        )
        nearby = []
        for prop in result.scalars().all():
            distance = _distance_from(center, prop)
            if distance is not None and distance <= radius_km:
                nearby.append({"property": prop, "distance_km": round(distance, 3)})
        nearby.sort(key=lambda item: item["distance_km"])
        return nearby[:limit]

    async def get_marketing_properties(self, limit: int = 3) -> List[MarketingCard]:
        result = await self.session.execute(
            select(Property)
            .where(
                Property.is_active.is_(True),
                Property.listing_status == ListingStatus.active,
                json_array_length(Property.images) > 0,
            )
            .order_by(Property.updated_at.desc(), Property.price.desc())
            .limit(limit * 2)
        )
        cards = []
        for prop in result.scalars().all():
            # A blank first image still disqualifies a listing
            images = prop.images or []
            if not images or not isinstance(images[0], str) or not images[0]:
                continue
            cards.append(
                MarketingCard(
                    zpid=prop.zpid or str(prop.id),
                    imageUrl=images[0],
                    price=float(prop.price) if prop.price is not None else None,
                    bedrooms=prop.bedrooms,
                    bathrooms=prop.bathrooms,
                    address=format_address(prop),
                    latitude=prop.latitude,
                    longitude=prop.longitude,
                )
            )
            if len(cards) >= limit:
                break
        return cards

    async def get_neighborhood(self, neighborhood_id: UUID) -> Optional[Neighborhood]:
        return await self.session.get(Neighborhood, neighborhood_id)

    async def list_neighborhoods(self, city: Optional[str] = None, state: Optional[str] = None) -> List[Neighborhood]:
        stmt = select(Neighborhood)
        if city:
            stmt = stmt.where(func.lower(Neighborhood.city) == city.lower())
        if state:
            stmt = stmt.where(func.upper(Neighborhood.state) == state.upper())
        result = await self.session.execute(stmt.order_by(Neighborhood.name))
        return list(result.scalars().all())
