from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field

from database import get_db
from schemas import Permission
from security import hash_password, require_permission
from services import accounts_service
from utils import doc_to_public

router = APIRouter()

manage_admins = require_permission("manage_admins")


# ----------------------------------------------------------------------------
# Models (request bodies)
# ----------------------------------------------------------------------------

class AdminCreateRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    permissions: List[Permission] = []
    is_super_admin: bool = False


class AdminUpdateRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    permissions: Optional[List[Permission]] = None
    is_super_admin: Optional[bool] = None


class StatusRequest(BaseModel):
    is_blocked: bool
    reason: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=6)


def _is_self(admin, target_id: str) -> bool:
    return str(admin["_id"]) == target_id


# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------

@router.get("")
def list_admins(
    page: int = 1,
    limit: int = 10,
    search: str = "",
    status: str = "all",
    sort_by: str = "created_at",
    sort_order: str = "desc",
    admin=Depends(manage_admins),
    db=Depends(get_db),
):
    result = accounts_service.list_accounts(db, "admin", page, limit, search, status, sort_by, sort_order)
    return {
        "success": True,
        "message": "Admins retrieved successfully",
        "admins": result["accounts"],
        "pagination": result["pagination"],
        "stats": accounts_service.account_stats(db, "admin"),
    }


@router.get("/stats")
def admin_stats(admin=Depends(manage_admins), db=Depends(get_db)):
    return {
        "success": True,
        "message": "Admin statistics retrieved successfully",
        "stats": accounts_service.account_stats(db, "admin"),
    }


@router.get("/{admin_id}")
def get_admin(admin_id: str, admin=Depends(manage_admins), db=Depends(get_db)):
    target = accounts_service.get_account_or_404(db, admin_id, "admin")
    return {"success": True, "message": "Admin retrieved successfully", "admin": doc_to_public(target)}


@router.post("", status_code=201)
def create_admin(body: AdminCreateRequest, admin=Depends(manage_admins), db=Depends(get_db)):
    created = accounts_service.create_account(
        db,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role="admin",
        created_by=str(admin["_id"]),
        permissions=body.permissions,
        is_super_admin=body.is_super_admin,
    )
    return {"success": True, "message": "Admin created successfully", "admin": doc_to_public(created)}


@router.put("/{admin_id}")
def update_admin(admin_id: str, body: AdminUpdateRequest, admin=Depends(manage_admins), db=Depends(get_db)):
    target = accounts_service.get_account_or_404(db, admin_id, "admin")
    if _is_self(admin, admin_id) and body.is_super_admin is not None:
        raise HTTPException(status_code=403, detail="You cannot change your own super admin status")
    if body.email and body.email != target["email"] and accounts_service.email_taken(db, body.email, exclude_id=target["_id"]):
        raise HTTPException(status_code=409, detail="Email already registered to another account")

    update = {k: v for k, v in body.model_dump().items() if v is not None}
    update["updated_at"] = datetime.utcnow()
    db["user"].update_one({"_id": target["_id"]}, {"$set": update})
    updated = db["user"].find_one({"_id": target["_id"]})
    return {"success": True, "message": "Admin updated successfully", "admin": doc_to_public(updated)}


@router.put("/{admin_id}/status")
def update_admin_status(admin_id: str, body: StatusRequest, admin=Depends(manage_admins), db=Depends(get_db)):
    if _is_self(admin, admin_id):
        raise HTTPException(status_code=403, detail="You cannot block/unblock yourself")
    target = accounts_service.get_account_or_404(db, admin_id, "admin")
    updated = accounts_service.set_blocked(db, target, admin, body.is_blocked, body.reason)
    return {
        "success": True,
        "message": f"Admin {'blocked' if body.is_blocked else 'unblocked'} successfully",
        "admin": doc_to_public(updated),
    }


@router.put("/{admin_id}/reset-password")
def reset_admin_password(admin_id: str, body: ResetPasswordRequest, admin=Depends(manage_admins), db=Depends(get_db)):
    target = accounts_service.get_account_or_404(db, admin_id, "admin")
    db["user"].update_one(
        {"_id": target["_id"]},
        {"$set": {"password_hash": hash_password(body.new_password), "updated_at": datetime.utcnow()}},
    )
    return {"success": True, "message": "Admin password reset successfully"}


@router.delete("/{admin_id}")
def delete_admin(admin_id: str, admin=Depends(manage_admins), db=Depends(get_db)):
    if _is_self(admin, admin_id):
        raise HTTPException(status_code=403, detail="You cannot delete yourself")
    target = accounts_service.get_account_or_404(db, admin_id, "admin")
    accounts_service.soft_delete(db, target, admin)
    return {"success": True, "message": "Admin deleted successfully"}
