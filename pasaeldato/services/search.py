import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pasaeldato import geo
from pasaeldato.errors import ValidationError
from pasaeldato.models.tip import PinSubtype, TipKind
from pasaeldato.models.utils import serialize_doc
from pasaeldato.services import fuzzy
from pasaeldato.services.communities import CommunityRegion
from pasaeldato.services.tips import ContentStore, tip_kind

logger = logging.getLogger(__name__)

# 0 means no cap: an unfiltered search returns every tip.
SEARCH_CANDIDATE_LIMIT = int(os.getenv("SEARCH_CANDIDATE_LIMIT", "0"))


@dataclass
class SearchResult:
    pins: List[Dict[str, Any]] = field(default_factory=list)
    texts: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"pins": serialize_doc(self.pins), "texts": serialize_doc(self.texts)}


def partition(docs: Iterable[Dict[str, Any]]) -> SearchResult:
    """Split tips into pin and text buckets, keeping their relative order."""
    result = SearchResult()
    for doc in docs:
        kind = tip_kind(doc.get("kind"))
        if kind is TipKind.PIN:
            result.pins.append(doc)
        elif kind is TipKind.TEXT:
            result.texts.append(doc)
        else:
            raise ValidationError(f"Unsupported tip kind: {kind}")
    return result


def searchable_fields(doc: Dict[str, Any]) -> Dict[str, Any]:
    fields = {
        "title": doc.get("title"),
        "description": doc.get("description"),
        "tags": doc.get("tags") or [],
    }
    if tip_kind(doc.get("kind")) is TipKind.PIN:
        fields["address"] = doc.get("address")
    return fields


def rank(terms: List[str], docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep the docs any term fuzzy-matches, best score first; ties keep input order."""
    scored = []
    for doc in docs:
        s = fuzzy.score(terms, searchable_fields(doc))
        if s > 0:
            scored.append((s, doc))
    scored.sort(key=lambda pair: -pair[0])
    return [doc for _, doc in scored]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SearchEngine:
    """Text, time and community scope combined into one tip search."""

    def __init__(
        self,
        tips: ContentStore,
        communities: CommunityRegion,
        candidate_limit: int = SEARCH_CANDIDATE_LIMIT,
    ):
        self.tips = tips
        self.communities = communities
        self.candidate_limit = candidate_limit

    async def build_query(
        self,
        updated_after: Optional[datetime] = None,
        point: Optional[geo.GeoPoint] = None,
        subtypes: Optional[List[PinSubtype]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Mongo filter for the non-text part of a search, or None when the
        community scope is empty and nothing can match.
        """
        if point is not None and not isinstance(point, geo.GeoPoint):
            raise ValidationError("point must be a GeoPoint")
        if updated_after is not None and not isinstance(updated_after, datetime):
            raise ValidationError("updatedAt must be a timestamp")

        query: Dict[str, Any] = {}
        if point is not None:
            scope = await self.communities.find_containing(point)
            if not scope:
                return None
            query["communityId"] = {"$in": sorted(scope)}
        if updated_after is not None:
            query["updatedAt"] = {"$gte": _as_utc(updated_after)}
        if subtypes:
            try:
                allowed = [PinSubtype(s).value for s in subtypes]
            except ValueError as e:
                raise ValidationError(f"Invalid subtype: {e}")
            query["$or"] = [
                {"kind": TipKind.TEXT.value},
                {"kind": TipKind.PIN.value, "subtype": {"$in": allowed}},
            ]
        return query

    async def search(
        self,
        text: Optional[str] = None,
        updated_after: Optional[datetime] = None,
        point: Optional[geo.GeoPoint] = None,
        subtypes: Optional[List[PinSubtype]] = None,
    ) -> SearchResult:
        query = await self.build_query(updated_after=updated_after, point=point, subtypes=subtypes)
        if query is None:
            logger.info(f"No community contains {point.coordinates}; empty search result")
            return SearchResult()

        candidates = await self.tips.find(query, self.candidate_limit)
        text = text.strip() if isinstance(text, str) else ""
        # non-blank text with no word characters yields no terms and matches nothing
        matches = rank(fuzzy.tokenize(text), candidates) if text else candidates
        result = partition(matches)
        logger.info(
            f"Tip search text={text!r} point={point.coordinates if point else None} "
            f"updated_after={updated_after}: {len(candidates)} candidates, "
            f"{len(result.pins)} pins, {len(result.texts)} texts"
        )
        return result
