from typing import Any, Dict, Literal, Tuple

from pydantic import BaseModel, Field, field_validator

from pasaeldato import geo


class GeoJSONPoint(BaseModel):
    """GeoJSON point helper that ensures [lng, lat] ordering."""

    type: Literal["Point"] = "Point"
    coordinates: Tuple[float, float]  # (longitude, latitude)

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        lng, lat = value
        if not -180 <= lng <= 180:
            raise ValueError(f"longitude must be between -180 and 180 (got: {lng})")
        if not -90 <= lat <= 90:
            raise ValueError(f"latitude must be between -90 and 90 (got: {lat})")
        return value

    def to_point(self) -> geo.GeoPoint:
        return geo.GeoPoint(*self.coordinates)


class Location(BaseModel):
    """A disk on the map: GeoJSON center (2dsphere indexed) plus a radius in meters."""

    point: GeoJSONPoint
    radius: float = Field(0, ge=0)

    def to_circle(self) -> geo.Circle:
        return geo.Circle(self.point.to_point(), self.radius)

    def to_doc(self) -> Dict[str, Any]:
        return geo.circle_to_doc(self.to_circle())
