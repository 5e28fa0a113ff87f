from datetime import datetime
from enum import Enum
from typing import Annotated, ClassVar, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from pasaeldato.models.community import reject_nulls, strip_tags, strip_text
from pasaeldato.models.location import Location


class TipKind(str, Enum):
    PIN = "pin"
    TEXT = "text"


class PinSubtype(str, Enum):
    SERVICE = "service"
    EVENT = "event"
    BUSINESS = "business"


class Direction(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


# Shared fields, pin-only fields and the list fields touched by likes.
PIN_FIELDS = ("location", "address", "subtype", "picture", "colour", "startDate", "durationMs")
REACTION_FIELDS = {Direction.LIKE: "likedBy", Direction.DISLIKE: "dislikedBy"}


class _TipBase(BaseModel):
    authorId: str
    communityId: str
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    tags: List[str] = []
    backgroundImage: Optional[str] = None
    comments: List[str] = []
    likedBy: List[str] = []
    dislikedBy: List[str] = []

    @field_validator("title", "description", "backgroundImage", mode="before")
    @classmethod
    def trim_text(cls, value):
        return strip_text(value)

    @field_validator("tags", mode="before")
    @classmethod
    def trim_tags(cls, value):
        return [] if value is None else strip_tags(value)


class PinTipCreate(_TipBase):
    kind: Literal["pin"]
    location: Location
    address: str = Field(..., min_length=1, max_length=500)
    subtype: Optional[PinSubtype] = None
    picture: Optional[str] = None
    colour: Optional[str] = None
    startDate: Optional[datetime] = None
    durationMs: Optional[int] = Field(None, ge=0)

    @field_validator("address", "picture", "colour", mode="before")
    @classmethod
    def trim_pin_text(cls, value):
        return strip_text(value)


class TextTipCreate(_TipBase):
    kind: Literal["text"]


TipCreate = Annotated[Union[PinTipCreate, TextTipCreate], Field(discriminator="kind")]
tip_create_adapter = TypeAdapter(TipCreate)


class TextTipUpdate(BaseModel):
    """
    Partial update of a text tip. An explicit null clears an optional field;
    required fields reject it.
    """

    model_config = ConfigDict(extra="forbid")

    REQUIRED: ClassVar[Tuple[str, ...]] = ("title", "description", "tags", "comments")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    tags: Optional[List[str]] = None
    backgroundImage: Optional[str] = None
    comments: Optional[List[str]] = None

    @model_validator(mode="before")
    @classmethod
    def required_fields_stay_set(cls, data):
        return reject_nulls(data, cls.REQUIRED)

    @field_validator("title", "description", "backgroundImage", mode="before")
    @classmethod
    def trim_text(cls, value):
        return strip_text(value)

    @field_validator("tags", mode="before")
    @classmethod
    def trim_tags(cls, value):
        return strip_tags(value)


class PinTipUpdate(TextTipUpdate):
    REQUIRED: ClassVar[Tuple[str, ...]] = TextTipUpdate.REQUIRED + ("location", "address")

    location: Optional[Location] = None
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    subtype: Optional[PinSubtype] = None
    picture: Optional[str] = None
    colour: Optional[str] = None
    startDate: Optional[datetime] = None
    durationMs: Optional[int] = Field(None, ge=0)

    @field_validator("address", "picture", "colour", mode="before")
    @classmethod
    def trim_pin_text(cls, value):
        return strip_text(value)


class ReactionIn(BaseModel):
    direction: Direction
