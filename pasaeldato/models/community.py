from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from pasaeldato.models.location import Location


def strip_text(value):
    return value.strip() if isinstance(value, str) else value


def strip_tags(value):
    # anything but a list is left for pydantic to reject
    if not isinstance(value, (list, tuple)):
        return value
    return [strip_text(v) for v in value]


def reject_nulls(data, fields):
    """Required fields may be left out of a patch but never set to null."""
    if isinstance(data, dict):
        for field in fields:
            if field in data and data[field] is None:
                raise ValueError(f"{field} is required and cannot be cleared")
    return data


class CommunityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    location: Location
    tags: List[str] = []
    colour: Optional[str] = None
    members: List[str] = []

    @field_validator("name", "description", "colour", mode="before")
    @classmethod
    def trim_text(cls, value):
        return strip_text(value)

    @field_validator("tags", mode="before")
    @classmethod
    def trim_tags(cls, value):
        return [] if value is None else strip_tags(value)


class CommunityUpdate(BaseModel):
    """Partial update; membership is changed only through join/leave. A null colour clears it."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    location: Optional[Location] = None
    tags: Optional[List[str]] = None
    colour: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def required_fields_stay_set(cls, data):
        return reject_nulls(data, ("name", "description", "location", "tags"))

    @field_validator("name", "description", "colour", mode="before")
    @classmethod
    def trim_text(cls, value):
        return strip_text(value)

    @field_validator("tags", mode="before")
    @classmethod
    def trim_tags(cls, value):
        return strip_tags(value)
