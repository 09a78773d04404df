import math
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from fastapi import HTTPException

SENSITIVE_FIELDS = ("password_hash",)


def oid_str(oid) -> str:
    return str(oid) if isinstance(oid, ObjectId) else oid


def to_object_id(value: str, detail: str = "Not found") -> ObjectId:
    """Parse a storage id; malformed ids are reported like a missing record."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        raise HTTPException(status_code=404, detail=detail)
    return ObjectId(value)


def doc_to_public(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = oid_str(doc.pop("_id"))
    # hide sensitive fields
    for field in SENSITIVE_FIELDS:
        doc.pop(field, None)
    return doc


def page_params(page: int, limit: int, max_limit: int = 100) -> Tuple[int, int, int]:
    """Clamp page/limit and return (page, limit, skip)."""
    page = max(1, int(page or 1))
    limit = min(max(1, int(limit or 1)), max_limit)
    return page, limit, (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
