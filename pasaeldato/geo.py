"""
Geospatial primitives.

Points and circles are plain immutable values; every relation between them
(containment, intersection) is derived from a single great-circle distance so
that community matching stays consistent whichever predicate a caller uses.
Coordinates are always ordered [longitude, latitude] and radii are meters.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from pasaeldato.errors import ValidationError

# Mean Earth radius (IUGG), meters.
EARTH_RADIUS_M = 6_371_008.8


def _check_range(value: Any, low: float, high: float, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number (got: {value!r})")
    value = float(value)
    if math.isnan(value) or value < low or value > high:
        raise ValidationError(f"Invalid {name}. Must be between {low:g} and {high:g} (got: {value})")
    return value


@dataclass(frozen=True)
class GeoPoint:
    longitude: float
    latitude: float

    def __post_init__(self):
        object.__setattr__(self, "longitude", _check_range(self.longitude, -180.0, 180.0, "longitude"))
        object.__setattr__(self, "latitude", _check_range(self.latitude, -90.0, 90.0, "latitude"))

    @property
    def coordinates(self) -> List[float]:
        return [self.longitude, self.latitude]


@dataclass(frozen=True)
class Circle:
    center: GeoPoint
    radius: float = 0.0

    def __post_init__(self):
        if not isinstance(self.center, GeoPoint):
            raise ValidationError("circle center must be a GeoPoint")
        radius = self.radius
        if isinstance(radius, bool) or not isinstance(radius, (int, float)) or math.isnan(radius):
            raise ValidationError(f"radius must be a number (got: {radius!r})")
        if radius < 0 or math.isinf(radius):
            raise ValidationError(f"radius must be a non-negative number of meters (got: {radius})")
        object.__setattr__(self, "radius", float(radius))


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters (haversine)."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # rounding can push h a hair above 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def contains(circle: Circle, point: GeoPoint) -> bool:
    return distance(circle.center, point) <= circle.radius


def intersects(a: Circle, b: Circle) -> bool:
    """True when the two filled disks overlap, including when one encloses the other."""
    return distance(a.center, b.center) <= a.radius + b.radius


@dataclass(frozen=True)
class BoundingBox:
    southwest: GeoPoint
    northeast: GeoPoint

    def __post_init__(self):
        if self.southwest.longitude >= self.northeast.longitude or self.southwest.latitude >= self.northeast.latitude:
            raise ValidationError("Invalid bounding box: southwest coordinates must be less than northeast coordinates")

    @classmethod
    def parse(cls, southwest: str, northeast: str) -> "BoundingBox":
        return cls(parse_lng_lat(southwest, "southwest"), parse_lng_lat(northeast, "northeast"))

    def as_box(self) -> List[List[float]]:
        """Corners in the shape expected by Mongo's ``$box`` operator."""
        return [self.southwest.coordinates, self.northeast.coordinates]


def parse_lng_lat(raw: str, name: str = "point") -> GeoPoint:
    """Parse a ``"lng,lat"`` query-string value into a GeoPoint."""
    if raw is None:
        raise ValidationError(f"{name} is required")
    parts = [part.strip() for part in str(raw).strip().split(",")]
    if len(parts) != 2:
        raise ValidationError(f"Invalid {name} format. Expected format: longitude,latitude (got: {raw!r})")
    try:
        lng, lat = float(parts[0]), float(parts[1])
    except ValueError:
        raise ValidationError(f"Invalid {name} format. Expected format: longitude,latitude (got: {raw!r})")
    return GeoPoint(lng, lat)


def point_from_params(longitude, latitude):
    """Both or neither: a lone longitude or latitude is a client error."""
    if longitude is None and latitude is None:
        return None
    if longitude is None or latitude is None:
        raise ValidationError("longitude and latitude must be provided together")
    return GeoPoint(longitude, latitude)


# GeoJSON / Mongo document helpers

def to_geojson(point: GeoPoint) -> Dict[str, Any]:
    return {"type": "Point", "coordinates": point.coordinates}


def circle_to_doc(circle: Circle) -> Dict[str, Any]:
    return {"point": to_geojson(circle.center), "radius": circle.radius}


def circle_from_doc(doc: Mapping[str, Any]) -> Circle:
    try:
        lng, lat = doc["point"]["coordinates"]
        radius = doc.get("radius", 0) or 0
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f"Malformed location document: {doc!r}")
    return Circle(GeoPoint(lng, lat), radius)
