from typing import Optional

from fastapi import APIRouter, Depends, Query

from pasaeldato import geo
from pasaeldato.deps import get_tips
from pasaeldato.errors import ValidationError
from pasaeldato.models.tip import TipKind
from pasaeldato.models.utils import serialize_doc
from pasaeldato.services import ContentStore
from pasaeldato.services.tips import MAP_PIN_LIMIT

router = APIRouter()


@router.get("/", summary="Pins inside the map viewport")
async def map_pins(
    southwest: Optional[str] = Query(None, description="lng,lat of the south-west corner"),
    northeast: Optional[str] = Query(None, description="lng,lat of the north-east corner"),
    tips: ContentStore = Depends(get_tips),
):
    if southwest is None and northeast is None:
        docs = await tips.find({"kind": TipKind.PIN.value}, MAP_PIN_LIMIT)
    elif southwest is None or northeast is None:
        raise ValidationError("southwest and northeast must be provided together")
    else:
        docs = await tips.pins_in_box(geo.BoundingBox.parse(southwest, northeast))
    return {"success": True, "data": [serialize_doc(d) for d in docs]}
