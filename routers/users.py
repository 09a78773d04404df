import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field

from database import get_db, get_documents
from security import create_access_token, get_current_user, get_optional_user, has_permission, hash_password, require_permission, verify_password
from services.accounts_service import create_account, email_taken
from utils import doc_to_public

logger = logging.getLogger(__name__)

router = APIRouter()

manage_customers = require_permission("manage_customers")


# ----------------------------------------------------------------------------
# Models (request bodies)
# ----------------------------------------------------------------------------

class SignupRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    type: Literal["customer", "admin", "staff"] = "customer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    profile_pic: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)
    confirm_password: str


class ProfilePicRequest(BaseModel):
    profile_pic: str = Field(..., min_length=1)


def account_summary(account) -> dict:
    return {
        "id": str(account["_id"]),
        "first_name": account.get("first_name"),
        "last_name": account.get("last_name"),
        "email": account.get("email"),
        "profile_pic": account.get("profile_pic"),
        "type": account.get("role"),
    }


# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------

@router.post("", status_code=201)
def signup(body: SignupRequest, caller=Depends(get_optional_user), db=Depends(get_db)):
    # Staff and admin accounts need the same grant as the admin management routes
    if body.type != "customer" and not has_permission(caller, "manage_admins"):
        raise HTTPException(status_code=403, detail="Please login as administrator to create admin account")
    account = create_account(
        db,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.type,
        created_by=str(caller["_id"]) if caller else None,
    )
    return {"success": True, "message": "User created successfully", "user": account_summary(account)}


@router.post("/login")
def login(body: LoginRequest, db=Depends(get_db)):
    account = db["user"].find_one({"email": body.email})
    if not account or account.get("is_deleted"):
        raise HTTPException(status_code=404, detail="User not found")
    if account.get("is_blocked"):
        logger.warning(f"Blocked account attempted login: {body.email}")
        raise HTTPException(status_code=403, detail="Account is blocked. Please contact administrator.")
    if not verify_password(body.password, account.get("password_hash")):
        logger.warning(f"Invalid password for {body.email}")
        raise HTTPException(status_code=401, detail="Invalid password")

    db["user"].update_one({"_id": account["_id"]}, {"$set": {"last_login": datetime.utcnow()}})
    return {
        "success": True,
        "message": "Login successful",
        "token": create_access_token(account),
        "user": account_summary(account),
    }


@router.get("")
def list_users(admin=Depends(manage_customers), db=Depends(get_db)):
    users = [doc_to_public(u) for u in get_documents(db, "user", sort=[("created_at", -1)])]
    return {"success": True, "message": "Users retrieved successfully", "count": len(users), "users": users}


@router.get("/me")
def me(current=Depends(get_current_user)):
    return {"success": True, "message": "User profile retrieved successfully", "user": doc_to_public(current)}


@router.put("/me")
def update_profile(body: ProfileUpdateRequest, current=Depends(get_current_user), db=Depends(get_db)):
    if email_taken(db, body.email, exclude_id=current["_id"]):
        raise HTTPException(status_code=409, detail="Email already registered to another account")
    update = {"first_name": body.first_name, "last_name": body.last_name, "email": body.email, "updated_at": datetime.utcnow()}
    if body.profile_pic:
        update["profile_pic"] = body.profile_pic
    db["user"].update_one({"_id": current["_id"]}, {"$set": update})
    updated = db["user"].find_one({"_id": current["_id"]})
    return {
        "success": True,
        "message": "Profile updated successfully",
        "token": create_access_token(updated),
        "user": doc_to_public(updated),
    }


@router.put("/me/password")
def change_password(body: ChangePasswordRequest, current=Depends(get_current_user), db=Depends(get_db)):
    if body.new_password != body.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")
    if not verify_password(body.current_password, current.get("password_hash")):
        raise HTTPException(status_code=401, detail="Current password is incorrect")
    if verify_password(body.new_password, current.get("password_hash")):
        raise HTTPException(status_code=400, detail="New password must be different from current password")
    db["user"].update_one(
        {"_id": current["_id"]},
        {"$set": {"password_hash": hash_password(body.new_password), "updated_at": datetime.utcnow()}},
    )
    return {"success": True, "message": "Password changed successfully"}


@router.put("/me/profile-pic")
def update_profile_pic(body: ProfilePicRequest, current=Depends(get_current_user), db=Depends(get_db)):
    db["user"].update_one({"_id": current["_id"]}, {"$set": {"profile_pic": body.profile_pic, "updated_at": datetime.utcnow()}})
    updated = db["user"].find_one({"_id": current["_id"]})
    return {
        "success": True,
        "message": "Profile picture updated successfully",
        "token": create_access_token(updated),
        "user": doc_to_public(updated),
    }
