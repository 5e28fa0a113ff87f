import logging
import os
from typing import Any, Dict, List, Mapping, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from pasaeldato import geo
from pasaeldato.db import retry_read
from pasaeldato.errors import ConflictError, NotFoundError, ValidationError
from pasaeldato.models.tip import (
    REACTION_FIELDS,
    Direction,
    PinTipUpdate,
    TextTipUpdate,
    TipKind,
    tip_create_adapter,
)
from pasaeldato.models.utils import (
    TIP_SET_FIELDS,
    apply_dedup,
    oid,
    parse_model,
    split_nulls,
    stamp,
    update_ops,
    utcnow,
)

logger = logging.getLogger(__name__)

MAP_PIN_LIMIT = int(os.getenv("MAP_PIN_LIMIT", "500"))
TIP_LIST_LIMIT = 100

# Newest first; _id breaks ties so repeated reads come back in the same order.
RECENT_FIRST = [("updatedAt", -1), ("_id", -1)]


def tip_kind(value: Any) -> TipKind:
    try:
        return TipKind(value)
    except ValueError:
        raise ValidationError(f"Invalid type. Must be one of: {', '.join(k.value for k in TipKind)} (got: {value!r})")


def _id_list(values, field: str) -> List[Any]:
    return [oid(v, field) for v in values or []]


def tip_to_doc(tip) -> Dict[str, Any]:
    """Mongo document for a validated create payload (either variant)."""
    doc: Dict[str, Any] = {
        "kind": tip.kind,
        "authorId": oid(tip.authorId, "authorId"),
        "communityId": oid(tip.communityId, "communityId"),
        "title": tip.title,
        "description": tip.description,
        "tags": tip.tags,
        "comments": _id_list(tip.comments, "comment id"),
        "likedBy": _id_list(tip.likedBy, "user id"),
        "dislikedBy": _id_list(tip.dislikedBy, "user id"),
    }
    if tip.backgroundImage is not None:
        doc["backgroundImage"] = tip.backgroundImage

    kind = tip_kind(tip.kind)
    if kind is TipKind.PIN:
        doc["location"] = tip.location.to_doc()
        doc["address"] = tip.address
        for field in ("subtype", "picture", "colour", "startDate", "durationMs"):
            value = getattr(tip, field)
            if value is not None:
                doc[field] = value.value if field == "subtype" else value
    elif kind is TipKind.TEXT:
        pass
    else:
        raise ValidationError(f"Unsupported tip kind: {kind}")

    if {str(u) for u in doc["likedBy"]} & {str(u) for u in doc["dislikedBy"]}:
        raise ValidationError("A user cannot both like and dislike a tip")
    return doc


def patch_to_update(kind: TipKind, patch: Mapping[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate a partial update against the tip's variant. Returns the fields to
    ``$set`` and the optional fields the patch clears with an explicit null.
    """
    if not isinstance(patch, Mapping):
        raise ValidationError("Update body must be an object")
    if "kind" in patch and patch["kind"] != kind.value:
        raise ValidationError("The kind of a tip cannot be changed")
    patch = {k: v for k, v in patch.items() if k != "kind"}

    if kind is TipKind.PIN:
        data = parse_model(PinTipUpdate, patch)
    elif kind is TipKind.TEXT:
        data = parse_model(TextTipUpdate, patch)
    else:
        raise ValidationError(f"Unsupported tip kind: {kind}")

    update, cleared = split_nulls(data.model_dump(exclude_unset=True, exclude={"location"}))
    if getattr(data, "location", None) is not None:
        update["location"] = data.location.to_doc()
    if "subtype" in update:
        update["subtype"] = update["subtype"].value
    if "comments" in update:
        update["comments"] = _id_list(update["comments"], "comment id")
    if not update and not cleared:
        raise ValidationError("No fields provided")
    return apply_dedup(update, TIP_SET_FIELDS), cleared


class ContentStore:
    """The tips collection: pin and text tips side by side, told apart by ``kind``."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database.tips

    async def create(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        tip = parse_model(tip_create_adapter, payload)
        doc = stamp(apply_dedup(tip_to_doc(tip), TIP_SET_FIELDS), created=True)
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise ConflictError(f"Tip already exists: {e}") from e
        doc["_id"] = result.inserted_id
        logger.info(f"Created {doc['kind']} tip {result.inserted_id} in community {doc['communityId']}")
        return doc

    async def get(self, tip_id: Any) -> Dict[str, Any]:
        tid = oid(tip_id, "tip id")
        doc = await retry_read(lambda: self.collection.find_one({"_id": tid}))
        if doc is None:
            raise NotFoundError("Tip", str(tid))
        return doc

    async def list_recent(self, limit: int = TIP_LIST_LIMIT) -> List[Dict[str, Any]]:
        return await retry_read(lambda: self.collection.find({}).sort(RECENT_FIRST).limit(limit).to_list(limit))

    async def find(self, query: Mapping[str, Any], limit: int = 0) -> List[Dict[str, Any]]:
        """Tips matching a prepared Mongo filter, newest first. ``limit=0`` means all."""
        return await retry_read(
            lambda: self.collection.find(dict(query)).sort(RECENT_FIRST).limit(limit).to_list(limit or None)
        )

    async def update(self, tip_id: Any, patch: Mapping[str, Any]) -> Dict[str, Any]:
        tid = oid(tip_id, "tip id")
        current = await retry_read(lambda: self.collection.find_one({"_id": tid}, projection={"kind": 1}))
        if current is None:
            raise NotFoundError("Tip", str(tid))
        kind = tip_kind(current.get("kind"))
        update, cleared = patch_to_update(kind, patch)
        doc = await self.collection.find_one_and_update(
            {"_id": tid, "kind": kind.value},
            update_ops(stamp(update), cleared),
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundError("Tip", str(tid))
        return doc

    async def toggle_like(self, tip_id: Any, user_id: Any, direction: Any) -> Dict[str, Any]:
        """
        Record a like or dislike. The user is added to one list and pulled from
        the other in the same update, so they never end up in both; repeating
        the call changes nothing.
        """
        tid = oid(tip_id, "tip id")
        uid = oid(user_id, "user id")
        try:
            direction = Direction(direction)
        except ValueError:
            raise ValidationError(f"direction must be 'like' or 'dislike' (got: {direction!r})")
        target = REACTION_FIELDS[direction]
        opposite = REACTION_FIELDS[Direction.DISLIKE if direction is Direction.LIKE else Direction.LIKE]

        doc = await self.collection.find_one_and_update(
            {"_id": tid},
            {
                "$addToSet": {target: uid},
                "$pull": {opposite: uid},
                "$set": {"updatedAt": utcnow()},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundError("Tip", str(tid))
        return doc

    async def delete(self, tip_id: Any) -> None:
        tid = oid(tip_id, "tip id")
        result = await self.collection.delete_one({"_id": tid})
        if result.deleted_count == 0:
            raise NotFoundError("Tip", str(tid))
        logger.info(f"Deleted tip {tid}")

    async def pins_in_box(self, bbox: geo.BoundingBox, limit: int = MAP_PIN_LIMIT) -> List[Dict[str, Any]]:
        query = {
            "kind": TipKind.PIN.value,
            "location.point": {"$geoWithin": {"$box": bbox.as_box()}},
        }
        return await self.find(query, limit)
