from pasaeldato.models.community import CommunityCreate, CommunityUpdate
from pasaeldato.models.location import GeoJSONPoint, Location
from pasaeldato.models.tip import (
    Direction,
    PinSubtype,
    PinTipCreate,
    PinTipUpdate,
    TextTipCreate,
    TextTipUpdate,
    TipCreate,
    TipKind,
)
from pasaeldato.models.utils import serialize_doc

__all__ = [
    "CommunityCreate",
    "CommunityUpdate",
    "Direction",
    "GeoJSONPoint",
    "Location",
    "PinSubtype",
    "PinTipCreate",
    "PinTipUpdate",
    "TextTipCreate",
    "TextTipUpdate",
    "TipCreate",
    "TipKind",
    "serialize_doc",
]
