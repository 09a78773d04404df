import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from database import get_db
from schemas import Benefit, Category, ScentFamily, SkinType
from security import require_permission
from services import catalog_service
from utils import doc_to_public, page_params, total_pages

router = APIRouter()

manage_products = require_permission("manage_products")


# ----------------------------------------------------------------------------
# Models (request bodies)
# ----------------------------------------------------------------------------

class ProductCreateRequest(BaseModel):
    product_name: str = Field(..., min_length=1)
    name: Optional[str] = None
    alt_names: List[str] = []
    category: Category = "all"
    images: List[str] = []
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    last_price: Optional[float] = Field(None, ge=0)
    description: str
    detailed_description: Optional[str] = None
    stock: int = Field(0, ge=0)
    is_new: bool = False
    is_best_seller: bool = False
    features: List[str] = []
    benefits: List[Benefit] = []
    skin_type: List[SkinType] = []
    scent_family: List[ScentFamily] = []
    tags: List[str] = []


class ProductUpdateRequest(BaseModel):
    product_name: Optional[str] = None
    name: Optional[str] = None
    alt_names: Optional[List[str]] = None
    category: Optional[Category] = None
    images: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    last_price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    detailed_description: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    is_new: Optional[bool] = None
    is_best_seller: Optional[bool] = None
    features: Optional[List[str]] = None
    benefits: Optional[List[Benefit]] = None
    skin_type: Optional[List[SkinType]] = None
    scent_family: Optional[List[ScentFamily]] = None
    tags: Optional[List[str]] = None


def _csv(value: Optional[str]) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


# ----------------------------------------------------------------------------
# Public endpoints
# ----------------------------------------------------------------------------

@router.get("")
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort_by: str = Query("created_at", description="created_at|price-low|price-high|featured|rating|newest"),
    sort_order: str = Query("desc", description="asc|desc"),
    page: int = 1,
    limit: int = 12,
    benefits: Optional[str] = None,
    skin_type: Optional[str] = None,
    scent_family: Optional[str] = None,
    is_new: Optional[bool] = None,
    is_best_seller: Optional[bool] = None,
    db=Depends(get_db),
):
    query: Dict[str, Any] = {}
    if category and category != "all":
        query["category"] = category
    if search:
        query["$or"] = [
            {field: {"$regex": re.escape(search), "$options": "i"}}
            for field in ("product_id", "product_name", "name", "description", "tags")
        ]
    if min_price is not None or max_price is not None:
        query["last_price"] = {}
        if min_price is not None:
            query["last_price"]["$gte"] = min_price
        if max_price is not None:
            query["last_price"]["$lte"] = max_price
    for field, raw in (("benefits", benefits), ("skin_type", skin_type), ("scent_family", scent_family)):
        values = _csv(raw)
        if values:
            query[field] = {"$in": values}
    if is_new is not None:
        query["is_new"] = is_new
    if is_best_seller is not None:
        query["is_best_seller"] = is_best_seller

    field, direction = catalog_service.sort_spec(sort_by, sort_order)

    page, limit, skip = page_params(page, limit)
    total = db["product"].count_documents(query)
    products = [doc_to_public(p) for p in db["product"].find(query).sort(field, direction).skip(skip).limit(limit)]
    pages = total_pages(total, limit)

    return {
        "success": True,
        "message": "Products retrieved successfully",
        "products": products,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": pages,
            "has_next_page": page < pages,
            "has_prev_page": page > 1,
            "next_page": page + 1 if page < pages else None,
            "prev_page": page - 1 if page > 1 else None,
        },
        "filters": {
            "category": category,
            "search": search,
            "min_price": min_price,
            "max_price": max_price,
            "benefits": benefits,
            "skin_type": skin_type,
            "scent_family": scent_family,
            "sort_by": sort_by,
            "sort_order": sort_order,
        },
    }


@router.get("/categories")
def product_categories(db=Depends(get_db)):
    rows = db["product"].aggregate([
        {"$group": {"_id": "$category", "count": {"$sum": 1}}},
        {"$sort": {"_id": 1}},
    ])
    categories = [{"category": "all", "count": db["product"].count_documents({})}]
    categories += [{"category": r["_id"], "count": r["count"]} for r in rows]
    return {"success": True, "message": "Categories retrieved successfully", "categories": categories}


@router.get("/featured")
def featured_products(db=Depends(get_db)):
    cursor = db["product"].find(
        {"$or": [{"is_best_seller": True}, {"is_new": True}, {"rating": {"$gte": 4.5}}]}
    ).sort([("rating", -1), ("created_at", -1)]).limit(8)
    return {"success": True, "message": "Featured products retrieved successfully", "products": [doc_to_public(p) for p in cursor]}


# ----------------------------------------------------------------------------
# Admin: Product Management
# ----------------------------------------------------------------------------

@router.get("/next-id")
def next_product_id(admin=Depends(manage_products), db=Depends(get_db)):
    return {"success": True, "message": "Next product ID retrieved successfully", "next_product_id": catalog_service.next_product_id(db)}


@router.get("/{product_ref}")
def get_product(product_ref: str, db=Depends(get_db)):
    product = catalog_service.get_product_or_404(db, product_ref)
    return {"success": True, "message": "Product retrieved successfully", "product": doc_to_public(product)}


@router.post("", status_code=201)
def create_product(body: ProductCreateRequest, admin=Depends(manage_products), db=Depends(get_db)):
    product = catalog_service.create_product(db, body.model_dump())
    return {"success": True, "message": "Product created successfully", "product": doc_to_public(product)}


@router.put("/{product_ref}")
def update_product(product_ref: str, body: ProductUpdateRequest, admin=Depends(manage_products), db=Depends(get_db)):
    changes = {k: v for k, v in body.model_dump().items() if v is not None}
    product = catalog_service.update_product(db, product_ref, changes)
    return {"success": True, "message": "Product updated successfully", "product": doc_to_public(product)}


@router.delete("/{product_ref}")
def delete_product(product_ref: str, admin=Depends(manage_products), db=Depends(get_db)):
    product = catalog_service.get_product_or_404(db, product_ref)
    db["product"].delete_one({"_id": product["_id"]})
    return {"success": True, "message": "Product deleted successfully"}
