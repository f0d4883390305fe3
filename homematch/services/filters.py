from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from sqlalchemy import and_, cast, func, or_
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql.elements import ColumnElement

from homematch.models import Property
from homematch.schemas.property import CityState, PropertyFilters
from homematch.utils.geo import BoundingBox, LatLng, bounding_boxes_around

OPERATIONS = ("gte", "lte", "eq", "in", "contains")


@dataclass
class FilterRule:
    filter_key: str
    column: str
    operation: str
    transform: Optional[Callable[[Any], Any]] = None


DEFAULT_RULES = [
    FilterRule("price_min", "price", "gte"),
    FilterRule("price_max", "price", "lte"),
    FilterRule("bedrooms_min", "bedrooms", "gte"),
    FilterRule("bedrooms_max", "bedrooms", "lte"),
    FilterRule("bathrooms_min", "bathrooms", "gte"),
    FilterRule("bathrooms_max", "bathrooms", "lte"),
    FilterRule("square_feet_min", "square_feet", "gte"),
    FilterRule("square_feet_max", "square_feet", "lte"),
    FilterRule("year_built_min", "year_built", "gte"),
    FilterRule("year_built_max", "year_built", "lte"),
    FilterRule("lot_size_min", "lot_size_sqft", "gte"),
    FilterRule("lot_size_max", "lot_size_sqft", "lte"),
    FilterRule("parking_spots_min", "parking_spots", "gte"),
    FilterRule("property_types", "property_type", "in"),
    FilterRule("neighborhoods", "neighborhood_id", "in"),
    FilterRule("listing_status", "listing_status", "in"),
]


def cities_clause(cities: List[CityState]) -> ColumnElement:
    """OR across (city, state) pairs; city is case-insensitive, state upper-cased."""
    return or_(
        *[
            and_(func.lower(Property.city) == c.city.strip().lower(), Property.state == c.state.strip().upper())
            for c in cities
        ]
    )


def amenity_clause(amenity: str) -> ColumnElement:
    return cast(Property.amenities, JSONB).contains([amenity])


def longitude_clause(boxes: List[BoundingBox]) -> ColumnElement:
    """Longitude ranges of one box, or of both halves when it wraps at ±180."""
    return or_(*[Property.longitude.between(box.west, box.east) for box in boxes])


class PropertyFilterBuilder:
    """Declarative mapping from ``PropertyFilters`` fields to WHERE clauses.

    Each rule names a filter key, the ``properties`` column it targets and the
    comparison to apply. Unset values and empty lists are skipped, so an empty
    ``PropertyFilters`` yields no clauses at all.
    """

    def __init__(self, rules: Optional[List[FilterRule]] = None):
        self.rules: List[FilterRule] = list(rules if rules is not None else DEFAULT_RULES)

    def get_filter_rules(self) -> List[FilterRule]:
        return list(self.rules)

    def add_filter_rule(self, rule: FilterRule) -> None:
        if rule.operation not in OPERATIONS:
            raise ValueError(f"Unsupported filter operation: {rule.operation}")
        self.rules.append(rule)

    def remove_filter_rule(self, filter_key: str) -> None:
        self.rules = [rule for rule in self.rules if rule.filter_key != filter_key]

    def build_clause(self, rule: FilterRule, value: Any) -> ColumnElement:
        column = getattr(Property, rule.column)
        if rule.transform:
            value = rule.transform(value)
        if rule.operation == "gte":
            return column >= value
        if rule.operation == "lte":
            return column <= value
        if rule.operation == "eq":
            return column == value
        if rule.operation == "in":
            return column.in_(list(value))
        if rule.operation == "contains":
            return cast(column, JSONB).contains(value)
        raise ValueError(f"Unsupported filter operation: {rule.operation}")

    def build(self, filters: PropertyFilters) -> List[ColumnElement]:
        clauses = []
        for rule in self.rules:
            value = getattr(filters, rule.filter_key, None)
            if value is None:
                continue
            if isinstance(value, (list, tuple)) and not value:
                continue
            clauses.append(self.build_clause(rule, value))

        for amenity in filters.amenities or []:
            clauses.append(amenity_clause(amenity))

        if filters.cities:
            clauses.append(cities_clause(filters.cities))

        if filters.within_radius:
            lng, lat = filters.within_radius.center
            boxes = bounding_boxes_around(LatLng(lat=lat, lng=lng), filters.within_radius.radius_km)
            clauses.append(Property.latitude.between(boxes[0].south, boxes[0].north))
            clauses.append(longitude_clause(boxes))
        return clauses

    def apply(self, stmt, filters: PropertyFilters):
        clauses = self.build(filters)
        return stmt.where(*clauses) if clauses else stmt


property_filter_builder = PropertyFilterBuilder()
