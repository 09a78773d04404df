import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from bson import ObjectId
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from config import settings
from database import get_db

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
bearer_scheme = HTTPBearer(auto_error=False)

# Permissions an admin can be scoped to. Super admins hold all of them and an
# admin with an empty permission set is unrestricted.
PERMISSIONS = (
    "manage_products",
    "manage_orders",
    "manage_customers",
    "manage_admins",
    "manage_reviews",
    "view_analytics",
    "manage_settings",
    "manage_promotions",
    "manage_categories",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_access_token(account: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(account["_id"]),
        "email": account["email"],
        "name": f"{account.get('first_name', '')} {account.get('last_name', '')}".strip(),
        "role": account.get("role", "customer"),
        "blocked": bool(account.get("is_blocked")),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired, please login again")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _load_account(db, payload: Dict[str, Any]) -> Dict[str, Any]:
    uid = payload.get("sub")
    if not uid or not ObjectId.is_valid(uid):
        raise HTTPException(status_code=401, detail="Invalid token payload")
    account = db["user"].find_one({"_id": ObjectId(uid)})
    if not account or account.get("is_deleted"):
        raise HTTPException(status_code=401, detail="User not found")
    if account.get("is_blocked"):
        raise HTTPException(status_code=403, detail="Account is blocked. Please contact administrator.")
    return account


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(get_db),
) -> Optional[Dict[str, Any]]:
    """Identity when a valid token is attached, None otherwise."""
    if credentials is None:
        return None
    try:
        return _load_account(db, decode_token(credentials.credentials))
    except HTTPException:
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(get_db),
) -> Dict[str, Any]:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication token required", headers={"WWW-Authenticate": "Bearer"})
    return _load_account(db, decode_token(credentials.credentials))


def has_permission(account: Dict[str, Any], permission: str) -> bool:
    if not account or account.get("role") != "admin":
        return False
    if account.get("is_super_admin"):
        return True
    granted = account.get("permissions") or []
    return not granted or permission in granted


def require_role(*roles: str):
    """Dependency factory: the current account must hold one of the roles."""
    def dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") not in roles:
            raise HTTPException(status_code=403, detail=f"Access denied. {' or '.join(r.capitalize() for r in roles)} only.")
        return user
    return dependency


def require_permission(permission: str):
    """Dependency factory: the current account must be an admin granted the permission."""
    if permission not in PERMISSIONS:
        raise ValueError(f"Unknown permission: {permission}")

    def dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") != "admin":
            raise HTTPException(status_code=403, detail="Access denied. Admin only.")
        if not has_permission(user, permission):
            logger.warning(f"Admin {user.get('email')} lacks permission {permission}")
            raise HTTPException(status_code=403, detail=f"Access denied. Missing permission: {permission}")
        return user
    return dependency


require_customer = require_role("customer")
