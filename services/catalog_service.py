import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from fastapi import HTTPException

from database import create_document, next_sequence, peek_sequence
from schemas import Product as ProductSchema

logger = logging.getLogger(__name__)

PRODUCT_SEQUENCE = "product_id"

# Named storefront sorts; plain field sorts are limited to SORTABLE_FIELDS
SORT_PRESETS = {
    "price-low": ("last_price", 1),
    "price-high": ("last_price", -1),
    "featured": ("is_best_seller", -1),
    "rating": ("rating", -1),
    "newest": ("created_at", -1),
}
SORTABLE_FIELDS = ("created_at", "updated_at", "product_id", "product_name", "price", "last_price", "rating", "review_count", "stock")


def format_product_id(value: int) -> str:
    return f"PRD{value:04d}"


def find_product(db, ref: str) -> Optional[Dict[str, Any]]:
    """Look a product up by storage id or by its human readable product_id."""
    if not ref:
        return None
    if ObjectId.is_valid(ref):
        product = db["product"].find_one({"_id": ObjectId(ref)})
        if product:
            return product
    return db["product"].find_one({"product_id": ref})


def get_product_or_404(db, ref: str) -> Dict[str, Any]:
    product = find_product(db, ref)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def effective_price(product: Dict[str, Any]) -> float:
    """The price a customer pays: last_price when set, else the list price."""
    return float(product.get("last_price") or product.get("price") or 0)


def first_image(product: Dict[str, Any]) -> str:
    images = product.get("images") or []
    return images[0] if images else ""


def display_name(product: Dict[str, Any]) -> str:
    return product.get("product_name") or product.get("name") or ""


def create_product(db, data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    data.pop("product_id", None)
    data["product_id"] = format_product_id(next_sequence(db, PRODUCT_SEQUENCE))
    if not data.get("name"):
        data["name"] = data["product_name"]
    if data.get("last_price") is None:
        data["last_price"] = data["price"]
    product = create_document(db, "product", ProductSchema(**data))
    logger.info(f"Product created: {product['product_id']}")
    return product


def sort_spec(sort_by: str, sort_order: str = "desc") -> Tuple[str, int]:
    if sort_by in SORT_PRESETS:
        field, direction = SORT_PRESETS[sort_by]
        if sort_by in ("featured", "rating") and sort_order == "asc":
            direction = 1
        return field, direction
    field = sort_by if sort_by in SORTABLE_FIELDS else "created_at"
    return field, (1 if sort_order == "asc" else -1)


def next_product_id(db) -> str:
    return format_product_id(peek_sequence(db, PRODUCT_SEQUENCE))


def update_product(db, ref: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    product = get_product_or_404(db, ref)
    # product_id is assigned once; rating and review_count are derived
    for field in ("product_id", "rating", "review_count", "_id"):
        changes.pop(field, None)
    changes["updated_at"] = datetime.utcnow()
    db["product"].update_one({"_id": product["_id"]}, {"$set": changes})
    return db["product"].find_one({"_id": product["_id"]})
