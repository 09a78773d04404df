import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from database import create_document
from schemas import StatusNote, User as UserSchema
from security import hash_password
from utils import doc_to_public, page_params, to_object_id, total_pages

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("created_at", "updated_at", "first_name", "last_name", "email", "last_login")
NOT_DELETED = {"is_deleted": {"$ne": True}}


def email_taken(db, email: str, exclude_id=None) -> bool:
    query: Dict[str, Any] = {"email": email}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return db["user"].find_one(query) is not None


def create_account(db, *, email: str, password: str, first_name: str, last_name: str, role: str = "customer", created_by: Optional[str] = None, **extra) -> Dict[str, Any]:
    if email_taken(db, email):
        raise HTTPException(status_code=409, detail="Email already registered")
    account = UserSchema(
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password),
        role=role,
        created_by=created_by,
        **extra,
    )
    try:
        doc = create_document(db, "user", account)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Email already registered")
    logger.info(f"Account created: {email} ({role})")
    return doc


def get_account_or_404(db, account_id: str, role: str) -> Dict[str, Any]:
    label = role.capitalize()
    account = db["user"].find_one({"_id": to_object_id(account_id, f"{label} not found"), "role": role, **NOT_DELETED})
    if not account:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return account


def list_accounts(db, role: str, page: int = 1, limit: int = 10, search: str = "", status: str = "all", sort_by: str = "created_at", sort_order: str = "desc") -> Dict[str, Any]:
    query: Dict[str, Any] = {"role": role, **NOT_DELETED}
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"first_name": {"$regex": pattern, "$options": "i"}},
            {"last_name": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]
    if status == "active":
        query["is_blocked"] = False
    elif status == "blocked":
        query["is_blocked"] = True

    page, limit, skip = page_params(page, limit)
    sort_field = sort_by if sort_by in SORTABLE_FIELDS else "created_at"
    direction = -1 if sort_order == "desc" else 1

    total = db["user"].count_documents(query)
    accounts = [doc_to_public(a) for a in db["user"].find(query).sort(sort_field, direction).skip(skip).limit(limit)]
    return {
        "accounts": accounts,
        "pagination": {
            "current_page": page,
            "total_pages": total_pages(total, limit),
            "total_items": total,
            "items_per_page": limit,
        },
    }


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0


def account_stats(db, role: str) -> Dict[str, Any]:
    base = {"role": role, **NOT_DELETED}
    total = db["user"].count_documents(base)
    active = db["user"].count_documents({**base, "is_blocked": False})
    blocked = db["user"].count_documents({**base, "is_blocked": True})

    now = datetime.utcnow()
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    start_of_last_month = (start_of_month - timedelta(days=1)).replace(day=1)
    new_this_month = db["user"].count_documents({**base, "created_at": {"$gte": start_of_month}})
    last_month = db["user"].count_documents({**base, "created_at": {"$gte": start_of_last_month, "$lt": start_of_month}})

    stats = {
        "total": total,
        "active": active,
        "blocked": blocked,
        "new_this_month": new_this_month,
        "growth_percentage": _percentage(new_this_month, last_month) if last_month else 100.0,
        "active_percentage": _percentage(active, total),
    }
    if role == "admin":
        stats["super_admins"] = db["user"].count_documents({**base, "is_super_admin": True})
    return stats


def set_blocked(db, account: Dict[str, Any], actor: Dict[str, Any], is_blocked: bool, reason: Optional[str] = None) -> Dict[str, Any]:
    note = StatusNote(action="blocked" if is_blocked else "unblocked", reason=reason, performed_by=str(actor["_id"]))
    db["user"].update_one(
        {"_id": account["_id"]},
        {
            "$set": {"is_blocked": is_blocked, "updated_at": datetime.utcnow()},
            "$push": {"status_notes": note.model_dump()},
        },
    )
    logger.info(f"Account {account['email']} {note.action} by {actor['email']}")
    return db["user"].find_one({"_id": account["_id"]})


def soft_delete(db, account: Dict[str, Any], actor: Dict[str, Any]) -> None:
    now = datetime.utcnow()
    db["user"].update_one(
        {"_id": account["_id"]},
        {"$set": {"is_deleted": True, "deleted_at": now, "deleted_by": str(actor["_id"]), "updated_at": now}},
    )
    logger.info(f"Account {account['email']} deleted by {actor['email']}")


def bootstrap_admin(db, email: str, password: str) -> None:
    """Create the configured super admin on first start."""
    if db["user"].find_one({"email": email}):
        return
    create_account(
        db,
        email=email,
        password=password,
        first_name="Super",
        last_name="Admin",
        role="admin",
        is_super_admin=True,
    )
