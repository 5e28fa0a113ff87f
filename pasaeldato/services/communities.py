import logging
import os
from typing import Any, Dict, List, Mapping, Set

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from pasaeldato import geo
from pasaeldato.db import retry_read
from pasaeldato.errors import ConflictError, NotFoundError, ValidationError
from pasaeldato.models.community import CommunityCreate, CommunityUpdate
from pasaeldato.models.utils import (
    COMMUNITY_SET_FIELDS,
    apply_dedup,
    dedup,
    oid,
    parse_model,
    split_nulls,
    stamp,
    update_ops,
    utcnow,
)

logger = logging.getLogger(__name__)

COMMUNITY_LIST_LIMIT = int(os.getenv("COMMUNITY_LIST_LIMIT", "100"))

# $geoNear measures on a slightly larger sphere than geo.distance; widen the
# coarse radius so the exact filter never loses a boundary candidate.
COARSE_SLACK = 1.01


class CommunityRegion:
    """Community records and the circle/point queries over their regions."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database.communities

    # --- region queries ---------------------------------------------------

    async def max_radius(self) -> float:
        """Largest radius of any stored community, 0 when there are none."""
        pipeline = [{"$group": {"_id": None, "maxRadius": {"$max": "$location.radius"}}}]
        agg = await retry_read(lambda: self.collection.aggregate(pipeline).to_list(1))
        if not agg:
            return 0.0
        return float(agg[0].get("maxRadius") or 0.0)

    async def find_intersecting_docs(self, query: geo.Circle) -> List[Dict[str, Any]]:
        """
        Communities whose disk overlaps ``query``.

        A 2dsphere ``$geoNear`` narrows the candidates to those whose center lies
        within ``query.radius + max community radius``; the exact sum-of-radii
        test then runs on that short list.
        """
        if not isinstance(query, geo.Circle):
            raise ValidationError("query must be a Circle")
        search_radius = (query.radius + await self.max_radius()) * COARSE_SLACK
        pipeline = [
            {
                "$geoNear": {
                    "near": geo.to_geojson(query.center),
                    "key": "location.point",
                    "distanceField": "distance",
                    "spherical": True,
                    "maxDistance": search_radius,
                }
            }
        ]
        candidates = await retry_read(lambda: self.collection.aggregate(pipeline).to_list(None))

        matches = []
        for doc in candidates:
            doc.pop("distance", None)
            region = geo.circle_from_doc(doc["location"])
            if geo.intersects(region, query):
                matches.append(doc)
        logger.debug(
            f"Region query r={query.radius} at {query.center.coordinates}: "
            f"{len(candidates)} candidates, {len(matches)} matches"
        )
        return matches

    async def find_containing_docs(self, point: geo.GeoPoint) -> List[Dict[str, Any]]:
        if not isinstance(point, geo.GeoPoint):
            raise ValidationError("point must be a GeoPoint")
        # a zero-radius disk intersects a region exactly when the region contains its center
        return await self.find_intersecting_docs(geo.Circle(point, 0))

    async def find_intersecting(self, query: geo.Circle) -> Set[ObjectId]:
        return {doc["_id"] for doc in await self.find_intersecting_docs(query)}

    async def find_containing(self, point: geo.GeoPoint) -> Set[ObjectId]:
        return {doc["_id"] for doc in await self.find_containing_docs(point)}

    # --- membership -------------------------------------------------------

    async def join(self, community_id: Any, user_id: Any) -> Dict[str, Any]:
        return await self._membership(community_id, user_id, "$addToSet")

    async def leave(self, community_id: Any, user_id: Any) -> Dict[str, Any]:
        return await self._membership(community_id, user_id, "$pull")

    async def _membership(self, community_id: Any, user_id: Any, operator: str) -> Dict[str, Any]:
        cid = oid(community_id, "community id")
        uid = oid(user_id, "user id")
        doc = await self.collection.find_one_and_update(
            {"_id": cid},
            {operator: {"members": uid}, "$set": {"updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundError("Community", str(cid))
        logger.info(f"Community {cid}: {operator} member {uid} -> {len(doc.get('members') or [])} members")
        return doc

    # --- records ----------------------------------------------------------

    async def create(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        data = parse_model(CommunityCreate, payload)
        doc = data.model_dump(exclude={"location", "members"})
        doc["location"] = data.location.to_doc()
        doc["members"] = [oid(m, "member id") for m in data.members]
        doc = stamp(apply_dedup(doc, COMMUNITY_SET_FIELDS), created=True)
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise ConflictError(f"Community already exists: {e}") from e
        doc["_id"] = result.inserted_id
        logger.info(f"Created community {result.inserted_id} ({doc['name']})")
        return doc

    async def get(self, community_id: Any) -> Dict[str, Any]:
        cid = oid(community_id, "community id")
        doc = await retry_read(lambda: self.collection.find_one({"_id": cid}))
        if doc is None:
            raise NotFoundError("Community", str(cid))
        return doc

    async def list_all(self, limit: int = COMMUNITY_LIST_LIMIT) -> List[Dict[str, Any]]:
        return await retry_read(
            lambda: self.collection.find({}).sort([("createdAt", -1), ("_id", -1)]).limit(limit).to_list(limit)
        )

    async def update(self, community_id: Any, patch: Mapping[str, Any]) -> Dict[str, Any]:
        cid = oid(community_id, "community id")
        data = parse_model(CommunityUpdate, patch)
        update, cleared = split_nulls(data.model_dump(exclude_unset=True, exclude={"location"}))
        if data.location is not None:
            update["location"] = data.location.to_doc()
        if not update and not cleared:
            raise ValidationError("No fields provided")
        if "tags" in update:
            update["tags"] = dedup(update["tags"])
        doc = await self.collection.find_one_and_update(
            {"_id": cid}, update_ops(stamp(update), cleared), return_document=ReturnDocument.AFTER
        )
        if doc is None:
            raise NotFoundError("Community", str(cid))
        return doc

    async def delete(self, community_id: Any) -> None:
        cid = oid(community_id, "community id")
        result = await self.collection.delete_one({"_id": cid})
        if result.deleted_count == 0:
            raise NotFoundError("Community", str(cid))
        logger.info(f"Deleted community {cid}")
