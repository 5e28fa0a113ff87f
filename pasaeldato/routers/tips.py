from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from pasaeldato import geo
from pasaeldato.deps import current_user_id, get_search, get_tips
from pasaeldato.errors import ValidationError
from pasaeldato.models.tip import Direction, PinSubtype, PinTipUpdate, TipCreate
from pasaeldato.models.utils import serialize_doc
from pasaeldato.services import ContentStore, SearchEngine

router = APIRouter()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"updatedAt must be an ISO-8601 timestamp (got: {value!r})")


def _parse_subtypes(value: Optional[str]) -> Optional[List[PinSubtype]]:
    if value is None:
        return None
    names = [v.strip() for v in value.split(",") if v.strip()]
    try:
        return [PinSubtype(n) for n in names]
    except ValueError:
        allowed = ", ".join(s.value for s in PinSubtype)
        raise ValidationError(f"allowedSubtypes must be a comma list of: {allowed} (got: {value!r})")


@router.get("/", summary="Search tips by text, location and update time")
async def search_tips(
    search: Optional[str] = Query(None),
    longitude: Optional[float] = Query(None),
    latitude: Optional[float] = Query(None),
    updatedAt: Optional[str] = Query(None, description="Only tips updated at or after this ISO-8601 time"),
    allowedSubtypes: Optional[str] = Query(None, description="Comma separated pin subtypes"),
    engine: SearchEngine = Depends(get_search),
):
    point = geo.point_from_params(longitude, latitude)
    result = await engine.search(
        text=search,
        updated_after=_parse_timestamp(updatedAt),
        point=point,
        subtypes=_parse_subtypes(allowedSubtypes),
    )
    return result.to_dict()


@router.post("/", status_code=201, summary="Create a pin or text tip")
async def create_tip(tip: TipCreate = Body(...), tips: ContentStore = Depends(get_tips)):
    return serialize_doc(await tips.create(tip.model_dump(exclude_unset=True)))


@router.get("/{tip_id}", summary="Get a tip")
async def get_tip(tip_id: str, tips: ContentStore = Depends(get_tips)):
    return serialize_doc(await tips.get(tip_id))


@router.patch("/{tip_id}", summary="Update tip fields")
async def update_tip(
    tip_id: str,
    patch: PinTipUpdate = Body(..., description="Pin-only fields are rejected on text tips"),
    tips: ContentStore = Depends(get_tips),
):
    # the stored kind decides which fields apply, so the service validates again
    return serialize_doc(await tips.update(tip_id, patch.model_dump(exclude_unset=True)))


@router.delete("/{tip_id}", summary="Delete a tip")
async def delete_tip(tip_id: str, tips: ContentStore = Depends(get_tips)):
    await tips.delete(tip_id)
    return {"success": True}


async def _react(tip_id: str, user_id: str, direction: Direction, tips: ContentStore) -> dict:
    doc = await tips.toggle_like(tip_id, user_id, direction)
    return {
        "tip_id": str(doc["_id"]),
        "likes": len(doc.get("likedBy") or []),
        "dislikes": len(doc.get("dislikedBy") or []),
    }


@router.post("/{tip_id}/like", summary="Like a tip")
async def like_tip(
    tip_id: str,
    user_id: str = Depends(current_user_id),
    tips: ContentStore = Depends(get_tips),
):
    return await _react(tip_id, user_id, Direction.LIKE, tips)


@router.post("/{tip_id}/dislike", summary="Dislike a tip")
async def dislike_tip(
    tip_id: str,
    user_id: str = Depends(current_user_id),
    tips: ContentStore = Depends(get_tips),
):
    return await _react(tip_id, user_id, Direction.DISLIKE, tips)
