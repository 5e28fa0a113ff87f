from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from pasaeldato.errors import ValidationError

# Collections that must hold each element at most once after any write.
TIP_SET_FIELDS = ("tags", "comments", "likedBy", "dislikedBy")
COMMUNITY_SET_FIELDS = ("tags", "members")


def serialize_doc(doc: Any) -> Any:
    """
    Convert a MongoDB document into something JSON serializable.
    ObjectId becomes str, datetime becomes ISO-8601; nested values are handled.
    """
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    if isinstance(doc, list):
        return [serialize_doc(x) for x in doc]
    if isinstance(doc, dict):
        return {k: serialize_doc(v) for k, v in doc.items()}
    return doc


def oid(value: Any, field: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {field}")
    return ObjectId(value)


def dedup(values: Optional[Iterable[Any]]) -> List[Any]:
    """Drop repeated elements, keeping the first occurrence."""
    seen = set()
    out = []
    for value in values or []:
        key = str(value)
        if key in seen:
            continue
        seen.add(key)
        out.append(value)
    return out


def apply_dedup(doc: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of ``doc`` with every present set field deduplicated."""
    result = dict(doc)
    for field in fields:
        if field in result and result[field] is not None:
            result[field] = dedup(result[field])
    return result


def split_nulls(patch: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Separate a dumped patch into the fields to ``$set`` and those to ``$unset``."""
    to_set = {k: v for k, v in patch.items() if v is not None}
    to_unset = [k for k, v in patch.items() if v is None]
    return to_set, to_unset


def update_ops(to_set: Dict[str, Any], to_unset: Iterable[str]) -> Dict[str, Any]:
    ops: Dict[str, Any] = {"$set": to_set}
    to_unset = list(to_unset)
    if to_unset:
        ops["$unset"] = {field: "" for field in to_unset}
    return ops


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stamp(doc: Dict[str, Any], now: Optional[datetime] = None, created: bool = False) -> Dict[str, Any]:
    """Return a copy of ``doc`` with ``updatedAt`` (and ``createdAt`` on insert) set."""
    now = now or utcnow()
    result = dict(doc)
    if created:
        result["createdAt"] = now
    result["updatedAt"] = now
    return result


def parse_model(model, data: Any):
    """Validate ``data`` against a pydantic model or TypeAdapter, raising ValidationError."""
    adapter = model if isinstance(model, TypeAdapter) else TypeAdapter(model)
    try:
        return adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(format_errors(e))


def format_errors(exc) -> str:
    """One line per error, ``loc: msg``. Works for pydantic and FastAPI request errors."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid payload"
