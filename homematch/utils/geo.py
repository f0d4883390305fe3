"""
Coordinate utilities.

Conventions: ``LatLng`` objects are (lat, lng); GeoJSON tuples and stored
geometry are [lng, lat]. Distances are kilometres.
"""
import math
import re
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, Field, model_validator

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


class LatLng(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class BoundingBox(BaseModel):
    north: float = Field(ge=-90, le=90)
    south: float = Field(ge=-90, le=90)
    east: float = Field(ge=-180, le=180)
    west: float = Field(ge=-180, le=180)

    @model_validator(mode="after")
    def check_orientation(self):
        if self.north <= self.south:
            raise ValueError("North must be greater than south")
        if self.east <= self.west:
            raise ValueError("East must be greater than west")
        return self


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180


def to_degrees(radians: float) -> float:
    return radians * 180 / math.pi


def is_valid_latitude(lat: Any) -> bool:
    return isinstance(lat, (int, float)) and not math.isnan(lat) and -90 <= lat <= 90


def is_valid_longitude(lng: Any) -> bool:
    return isinstance(lng, (int, float)) and not math.isnan(lng) and -180 <= lng <= 180


def is_valid_lat_lng(coords: Any) -> bool:
    if isinstance(coords, LatLng):
        return True
    if isinstance(coords, dict):
        return is_valid_latitude(coords.get("lat")) and is_valid_longitude(coords.get("lng"))
    return False


def is_valid_bounding_box(bbox: Any) -> bool:
    if isinstance(bbox, BoundingBox):
        return True
    try:
        BoundingBox.model_validate(bbox)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def lat_lng_to_geojson(coords: LatLng) -> dict:
    coords = LatLng.model_validate(coords)
    return {"type": "Point", "coordinates": [coords.lng, coords.lat]}


def geojson_to_lat_lng(geojson: dict) -> LatLng:
    if not isinstance(geojson, dict) or geojson.get("type") != "Point":
        raise ValueError("Invalid GeoJSON Point format")
    coordinates = geojson.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
        raise ValueError("Invalid GeoJSON Point format")
    lng, lat = coordinates
    return LatLng(lat=lat, lng=lng)


def tuple_to_lat_lng(pair: Sequence[float]) -> LatLng:
    lng, lat = pair
    return LatLng(lat=lat, lng=lng)


def parse_geometry(geometry: Any) -> Optional[LatLng]:
    """Best-effort parse of a stored point: GeoJSON, {lat, lng} or [lng, lat]."""
    if not geometry:
        return None
    try:
        if isinstance(geometry, dict):
            if geometry.get("type") == "Point":
                return geojson_to_lat_lng(geometry)
            if "lat" in geometry and "lng" in geometry:
                return LatLng(lat=geometry["lat"], lng=geometry["lng"])
            return None
        if isinstance(geometry, (list, tuple)) and len(geometry) == 2:
            return tuple_to_lat_lng(geometry)
    except (ValueError, TypeError):
        return None
    return None


# ---------------------------------------------------------------------------
# Bounding boxes
# ---------------------------------------------------------------------------

def calculate_bounding_box(points: List[LatLng]) -> BoundingBox:
    if not points:
        raise ValueError("Cannot calculate bounding box from empty coordinate array")
    for index, point in enumerate(points):
        if not is_valid_lat_lng(point):
            raise ValueError(f"Invalid coordinate at index {index}: {point!r}")
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return BoundingBox(north=max(lats), south=min(lats), east=max(lngs), west=min(lngs))


def expand_bounding_box(bbox: BoundingBox, distance_km: float) -> BoundingBox:
    if distance_km <= 0:
        raise ValueError("Distance must be positive")
    lat_offset = distance_km / KM_PER_DEGREE
    mid_lat = (bbox.north + bbox.south) / 2
    lng_offset = distance_km / (KM_PER_DEGREE * math.cos(to_radians(mid_lat)))
    return BoundingBox(
        north=min(90.0, bbox.north + lat_offset),
        south=max(-90.0, bbox.south - lat_offset),
        east=min(180.0, bbox.east + lng_offset),
        west=max(-180.0, bbox.west - lng_offset),
    )


def bounding_box_around(center: LatLng, radius_km: float) -> BoundingBox:
    """Smallest lat/lng box that contains the circle of ``radius_km``."""
    if radius_km <= 0:
        raise ValueError("Radius must be positive")
    lat_offset = radius_km / KM_PER_DEGREE
    cos_lat = max(math.cos(to_radians(center.lat)), 1e-6)
    lng_offset = radius_km / (KM_PER_DEGREE * cos_lat)
    return BoundingBox(
        north=min(90.0, center.lat + lat_offset),
        south=max(-90.0, center.lat - lat_offset),
        east=min(180.0, center.lng + lng_offset),
        west=max(-180.0, center.lng - lng_offset),
    )


def bounding_boxes_around(center: LatLng, radius_km: float) -> List[BoundingBox]:
    """Like ``bounding_box_around`` but wraps at the antimeridian.

    A circle that crosses ±180 yields two boxes, one on each side.
    """
    if radius_km <= 0:
        raise ValueError("Radius must be positive")
    lat_offset = radius_km / KM_PER_DEGREE
    cos_lat = max(math.cos(to_radians(center.lat)), 1e-6)
    lng_offset = radius_km / (KM_PER_DEGREE * cos_lat)
    north = min(90.0, center.lat + lat_offset)
    south = max(-90.0, center.lat - lat_offset)
    west = center.lng - lng_offset
    east = center.lng + lng_offset

    if lng_offset >= 180:
        return [BoundingBox(north=north, south=south, east=180.0, west=-180.0)]
    if west < -180:
        return [
            BoundingBox(north=north, south=south, east=180.0, west=west + 360),
            BoundingBox(north=north, south=south, east=east, west=-180.0),
        ]
    if east > 180:
        return [
            BoundingBox(north=north, south=south, east=180.0, west=west),
            BoundingBox(north=north, south=south, east=east - 360, west=-180.0),
        ]
    return [BoundingBox(north=north, south=south, east=east, west=west)]


def is_coordinate_in_bounds(coord: LatLng, bbox: BoundingBox) -> bool:
    if not is_valid_lat_lng(coord) or not is_valid_bounding_box(bbox):
        return False
    return bbox.south <= coord.lat <= bbox.north and bbox.west <= coord.lng <= bbox.east


def bounding_boxes_intersect(first: BoundingBox, second: BoundingBox) -> bool:
    if not is_valid_bounding_box(first) or not is_valid_bounding_box(second):
        return False
    return not (
        first.east < second.west
        or first.west > second.east
        or first.north < second.south
        or first.south > second.north
    )


def get_bounding_box_center(bbox: BoundingBox) -> LatLng:
    return LatLng(lat=(bbox.north + bbox.south) / 2, lng=(bbox.east + bbox.west) / 2)


# ---------------------------------------------------------------------------
# Distances
# ---------------------------------------------------------------------------

def calculate_distance(first: LatLng, second: LatLng) -> float:
    """Great-circle distance in kilometres (haversine)."""
    d_lat = to_radians(second.lat - first.lat)
    d_lng = to_radians(second.lng - first.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(to_radians(first.lat)) * math.cos(to_radians(second.lat)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def calculate_bearing(first: LatLng, second: LatLng) -> float:
    d_lng = to_radians(second.lng - first.lng)
    lat1 = to_radians(first.lat)
    lat2 = to_radians(second.lat)
    y = math.sin(d_lng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lng)
    return (to_degrees(math.atan2(y, x)) + 360) % 360


def calculate_destination(start: LatLng, distance_km: float, bearing: float) -> LatLng:
    if distance_km < 0:
        raise ValueError("Distance must be non-negative")
    angular = distance_km / EARTH_RADIUS_KM
    lat1 = to_radians(start.lat)
    lng1 = to_radians(start.lng)
    theta = to_radians(bearing)

    lat2 = math.asin(math.sin(lat1) * math.cos(angular) + math.cos(lat1) * math.sin(angular) * math.cos(theta))
    lng2 = lng1 + math.atan2(
        math.sin(theta) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2),
    )
    # Wrap longitude back into [-180, 180)
    lng = (to_degrees(lng2) + 540) % 360 - 180
    return LatLng(lat=to_degrees(lat2), lng=lng)


def create_circular_polygon(center: LatLng, radius_km: float, num_points: int = 16) -> List[LatLng]:
    if radius_km <= 0:
        raise ValueError("Radius must be positive")
    if num_points < 3:
        raise ValueError("Number of points must be at least 3")
    step = 360 / num_points
    return [calculate_destination(center, radius_km, i * step) for i in range(num_points)]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def round_coordinates(coords: LatLng, decimals: int = 6) -> LatLng:
    return LatLng(lat=round(coords.lat, decimals), lng=round(coords.lng, decimals))


def format_coordinates(coords: LatLng, decimals: int = 6) -> str:
    rounded = round_coordinates(coords, decimals)
    lat_dir = "N" if rounded.lat >= 0 else "S"
    lng_dir = "E" if rounded.lng >= 0 else "W"
    return f"{abs(rounded.lat)}°{lat_dir}, {abs(rounded.lng)}°{lng_dir}"


_HEMISPHERE = re.compile(r"[NSEWnsew°\s]")


def parse_coordinate_string(value: str) -> Optional[LatLng]:
    """Parse ``"37.7749, -122.4194"`` or ``"37.7749N, 122.4194W"``."""
    if not value or not isinstance(value, str):
        return None
    parts = [part.strip() for part in value.strip().split(",")]
    if len(parts) != 2:
        return None
    try:
        lat = float(_HEMISPHERE.sub("", parts[0]))
        lng = float(_HEMISPHERE.sub("", parts[1]))
    except ValueError:
        return None
    if re.search(r"[Ss]", parts[0]):
        lat = -abs(lat)
    if re.search(r"[Ww]", parts[1]):
        lng = -abs(lng)
    if not (is_valid_latitude(lat) and is_valid_longitude(lng)):
        return None
    return LatLng(lat=lat, lng=lng)
