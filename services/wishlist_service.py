"""
Wishlists.

One wishlist per account. Entries hold only the product's storage id and are
resolved against the catalog on every read, so prices and stock are always
current and entries for deleted products drop out.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from bson import ObjectId
from fastapi import HTTPException

from database import create_document
from schemas import Wishlist as WishlistSchema, WishlistItem
from services.catalog_service import get_product_or_404
from utils import doc_to_public

logger = logging.getLogger(__name__)


def resolve(db, wishlist: Dict[str, Any]) -> Dict[str, Any]:
    """Attach current product data to each entry; entries for removed products are skipped."""
    entries = wishlist.get("items", [])
    ids = [ObjectId(e["product_id"]) for e in entries if ObjectId.is_valid(e["product_id"])]
    products = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": ids}})} if ids else {}
    items = []
    for entry in entries:
        product = products.get(entry["product_id"])
        if product:
            items.append({"product": doc_to_public(product), "added_at": entry.get("added_at")})
    return {"id": str(wishlist["_id"]) if "_id" in wishlist else None, "user_id": wishlist["user_id"], "items": items}


def get_wishlist_or_404(db, user_id: str) -> Dict[str, Any]:
    wishlist = db["wishlist"].find_one({"user_id": user_id})
    if not wishlist:
        raise HTTPException(status_code=404, detail="Wishlist not found")
    return wishlist


def get_wishlist(db, user_id: str) -> Dict[str, Any]:
    wishlist = db["wishlist"].find_one({"user_id": user_id})
    if not wishlist:
        return {"user_id": user_id, "items": []}
    return resolve(db, wishlist)


def add_product(db, user_id: str, product_ref: str) -> Dict[str, Any]:
    product = get_product_or_404(db, product_ref)
    product_id = str(product["_id"])

    wishlist = db["wishlist"].find_one({"user_id": user_id})
    if not wishlist:
        wishlist = create_document(db, "wishlist", WishlistSchema(user_id=user_id))
    if any(e["product_id"] == product_id for e in wishlist.get("items", [])):
        raise HTTPException(status_code=400, detail="Product already in wishlist")

    db["wishlist"].update_one(
        {"_id": wishlist["_id"]},
        {"$push": {"items": WishlistItem(product_id=product_id).model_dump()}, "$set": {"updated_at": datetime.utcnow()}},
    )
    logger.info(f"Product {product['product_id']} added to wishlist of {user_id}")
    return resolve(db, db["wishlist"].find_one({"_id": wishlist["_id"]}))


def remove_product(db, user_id: str, product_ref: str) -> Dict[str, Any]:
    product = get_product_or_404(db, product_ref)
    wishlist = get_wishlist_or_404(db, user_id)
    db["wishlist"].update_one(
        {"_id": wishlist["_id"]},
        {"$pull": {"items": {"product_id": str(product["_id"])}}, "$set": {"updated_at": datetime.utcnow()}},
    )
    return resolve(db, db["wishlist"].find_one({"_id": wishlist["_id"]}))


def clear(db, user_id: str) -> Dict[str, Any]:
    wishlist = get_wishlist_or_404(db, user_id)
    db["wishlist"].update_one({"_id": wishlist["_id"]}, {"$set": {"items": [], "updated_at": datetime.utcnow()}})
    wishlist["items"] = []
    return resolve(db, wishlist)


def contains(db, user_id: str, product_ref: str) -> Dict[str, Any]:
    product = get_product_or_404(db, product_ref)
    found = db["wishlist"].find_one({"user_id": user_id, "items.product_id": str(product["_id"])})
    return {"is_in_wishlist": found is not None, "product_id": product.get("product_id")}


def count(db, user_id: str) -> int:
    wishlist = db["wishlist"].find_one({"user_id": user_id})
    return len(wishlist.get("items", [])) if wishlist else 0
